"""Claude-powered question answering over a single memo transcript."""

from __future__ import annotations

from anthropic import Anthropic
from anthropic.types import TextBlock

from src.config import settings

SYSTEM_PROMPT = (
    "You answer questions about a voice memo.\n\n"
    "Rules:\n"
    "- Answer using only the provided transcript. If the answer isn't in the "
    "transcript, say so.\n"
    "- Be concise and direct."
)


def answer_question(question: str, transcript_text: str) -> str:
    """Answer *question* from *transcript_text* only.

    Args:
        question: The listener's question.
        transcript_text: The memo's transcript (lines joined by spaces).

    Returns:
        The answer text (may be empty if the model returns nothing).
    """
    client = Anthropic(api_key=settings.anthropic_api_key)
    response = client.messages.create(
        model=settings.llm_model,
        max_tokens=settings.qa_max_tokens,
        temperature=0.2,
        system=SYSTEM_PROMPT,
        messages=[
            {
                "role": "user",
                "content": f"Transcript:\n{transcript_text}\n\nQuestion: {question}",
            }
        ],
    )

    # We always request plain text, so the first block should be a TextBlock
    if not response.content:
        return ""
    block = response.content[0]
    if not isinstance(block, TextBlock):
        raise ValueError(f"Expected TextBlock from Claude, got {type(block).__name__}")
    return block.text
