RAG_SYSTEM_PROMPT = """You are LocalBOT, a helpful AI assistant. Answer the user's question using the provided context. Always reference which source documents you used. Keep answers clear and concise."""


CONTEXT_PROMPT_TEMPLATE = """Use the following context to answer the question. Cite the source documents.

Context:
{context}

Question: {question}

Answer:"""


def build_prompt(question: str, context: str = "") -> str:
    """Wrap the question with retrieved context, or pass it through as-is."""
    if not context:
        return question
    return CONTEXT_PROMPT_TEMPLATE.format(context=context, question=question)
