"""Prompt builders for grounded answers, conversational turns and verification."""

STATIC_INTRODUCTION = (
    "Hello! I'm here to help you explore your tasks and issues. "
    "Just ask me anything about your project data!"
)
STATIC_NO_DATA = (
    "I couldn't find any relevant tasks or issues matching your query. "
    "Try asking about specific tasks, issues, or project details."
)
INSUFFICIENT_DATA = "Insufficient data to answer."
NO_DOCUMENTS_PLACEHOLDER = "[No relevant documents found]"


class PromptTemplate:
    """Builds a sectioned prompt: ROLE, INSTRUCTIONS, CONSTRAINTS, CONTEXT, QUERY.

    Example:
        prompt = (
            PromptTemplate("Knowledge Assistant")
            .add_instruction("Answer using ONLY the retrieved documents")
            .add_constraint("You MUST NOT use external knowledge")
            .build(context, question)
        )
    """

    def __init__(self, role: str) -> None:
        self.role = role
        self.instructions: list[str] = []
        self.constraints: list[str] = []

    def add_instruction(self, instruction: str) -> "PromptTemplate":
        self.instructions.append(instruction)
        return self

    def add_constraint(self, constraint: str) -> "PromptTemplate":
        self.constraints.append(constraint)
        return self

    def build(self, context: str, query: str) -> str:
        parts = [f"ROLE: {self.role}\n"]

        if self.instructions:
            lines = [f"{i}. {text}" for i, text in enumerate(self.instructions, 1)]
            parts.append("INSTRUCTIONS:\n" + "\n".join(lines) + "\n")

        if self.constraints:
            lines = [f"{i}. {text}" for i, text in enumerate(self.constraints, 1)]
            parts.append("CONSTRAINTS:\n" + "\n".join(lines) + "\n")

        parts.append(f"CONTEXT:\n{context}\n")
        parts.append(f"QUERY: {query}\n")
        parts.append("RESPONSE:")
        return "\n".join(parts)


def template_grounded_prompt(context_block: str, question: str) -> str:
    """Grounded prompt in sectioned template form."""
    return (
        PromptTemplate("Knowledge Assistant")
        .add_instruction("Answer the user's question using ONLY the retrieved documents")
        .add_instruction("Cite specific information from the context when possible")
        .add_instruction("If the context does not contain enough information, state this clearly")
        .add_constraint("You MUST NOT use external knowledge")
        .add_constraint("You MUST NOT make assumptions")
        .add_constraint(
            "If you cannot answer from context, say: "
            "'I cannot answer this based on the available documents'"
        )
        .build(context_block.strip() or NO_DOCUMENTS_PLACEHOLDER, question)
    )


def strict_grounded_prompt(context_block: str, question: str) -> str:
    """Grounded prompt as a numbered list of strict rules."""
    return f"""You are a helpful assistant that answers questions using ONLY the provided context.

STRICT RULES:
1. Answer ONLY using information from the context below
2. If the context does not contain enough information to answer the question, respond with: "{INSUFFICIENT_DATA}"
3. Do NOT make up or infer information not present in the context
4. Do NOT use any external knowledge
5. Be concise and direct in your response
6. Reference the source type (task, issue, comment) when relevant

CONTEXT:
{context_block}

USER QUESTION:
{question}

ANSWER:"""


# Wording per backend position: the first backend gets the template form,
# every later one the strict form.
GROUNDED_PROMPT_STYLES = (template_grounded_prompt, strict_grounded_prompt)


def grounded_prompt_for(position: int, context_block: str, question: str) -> str:
    style = GROUNDED_PROMPT_STYLES[min(position, len(GROUNDED_PROMPT_STYLES) - 1)]
    return style(context_block, question)


def introduction_prompt(message: str) -> str:
    return f"""You are a helpful AI assistant integrated into a task and issue management system.
You help users query their company's tasks, issues, and project data.

The user has asked a general question. Respond naturally and helpfully.
If they're greeting you, greet them back warmly.
If they're asking what you can do, explain that you can:
- Answer questions about their tasks and issues
- Help them find specific tasks by status, priority, or description
- Summarize project activity
- Search through their company data

Keep your response concise (2-4 sentences) and friendly.

User message: {message}

Response:"""


def no_data_prompt(question: str) -> str:
    return f"""You are a helpful AI assistant for a task and issue management system.
The user asked a question, but no relevant tasks or issues were found in their data.

Provide a brief, helpful response that:
1. Acknowledges you couldn't find relevant data
2. Suggests what they could try instead (be specific to their question if possible)
3. Reminds them you can help with tasks, issues, and project data

Keep it to 2-3 sentences. Be helpful, not apologetic.

User question: {question}

Response:"""


def verification_prompt(question: str, excerpts: list[str]) -> str:
    """Ask for a strict-JSON verdict on a question, grounded in document excerpts."""
    context = "\n\n".join(excerpts)
    return f"""You are a document verification assistant.

Use ONLY the provided context excerpts to answer the user's question. Do not use outside knowledge.
If the context does not contain enough evidence, say so.

Return STRICT JSON with this shape:
{{
  "verdict": "verified" | "unverified" | "insufficient",
  "confidence": number,
  "answer": string,
  "citations": [{{"chunk_index": number, "reason": string}}]
}}

Rules:
- "confidence" must be between 0 and 1.
- If you cannot support the answer from context, use verdict "insufficient".

User question:
{question}

Context excerpts:
{context}
"""


def task_verification_prompt(task_title: str, task_description: str, document_text: str) -> str:
    """Ask whether a submitted document shows a task was done, as strict JSON."""
    context = f"""TASK ASSIGNED:
Title: {task_title}
Description: {task_description}

SUBMITTED DOCUMENT CONTENT:
{document_text}

Return STRICT JSON with this shape:
{{
  "task_matches": boolean,
  "completed_work": string,
  "missing_work": [string],
  "verification_notes": string,
  "recommendation": "approve" | "needs_review" | "reject"
}}"""
    return (
        PromptTemplate("Document Verification Assistant")
        .add_instruction("Analyze the submitted document against the assigned task requirements")
        .add_instruction("Identify what work was completed based ONLY on the document content")
        .add_instruction("Verify if the completed work matches the task requirements")
        .add_instruction("Highlight any missing deliverables or unclear sections")
        .add_constraint("You MUST answer only from the provided document content")
        .add_constraint("Do NOT assume work was done if not explicitly shown in the document")
        .add_constraint("Do NOT use external knowledge")
        .add_constraint("If evidence is insufficient, state this clearly")
        .build(
            context,
            "Does this document demonstrate completion of the assigned task? "
            "What work was done and what is missing?",
        )
    )
