"""HTTP and command-line clients for workrag."""
