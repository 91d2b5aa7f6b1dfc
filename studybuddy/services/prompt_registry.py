"""Prompt templates for StudyBuddy generation calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


PROMPT_REGISTRY_VERSION = "2026-10-01"


PROMPT_FLASHCARDS = """Convert the following transcript into {card_count} study flashcards in JSON format (return this as text, no markdown).
Also generate a short session name. The final JSON format should be:
[
  "sessionName",
  [
    {{
      "question": "Question 1",
      "answer": "Answer 1"
    }}
  ]
]

Transcript:
{transcript}

Requirements:
- Return only the JSON array in the exact format specified.
- Index 0: A short sessionName (string).
- Index 1: An array of flashcard objects, each with "question" and "answer" fields.
- No extra text, explanations, or code snippets.
- Ensure the JSON is valid and can be parsed.
- Use the same language as the transcript.
- Ignore info about personnel, course structure, or tools; focus on educational content."""

PROMPT_ADDITIONAL_FLASHCARDS = """Create {card_count} new study flashcards from the transcript below.
The learner already has flashcards for these questions, so do not repeat or rephrase them:
{existing_questions}

Return only a JSON array (no markdown) in this exact format:
[
  {{
    "question": "Question 1",
    "answer": "Answer 1"
  }}
]

Transcript:
{transcript}

Requirements:
- Every object has string "question" and "answer" fields.
- Use the same language as the transcript.
- Focus on educational content only."""

PROMPT_QUIZ = """Convert the following transcript into a detailed and varied multiple-choice quiz. Your output must strictly follow these instructions:

1. Generate a short session name that summarizes the key subject matter of the transcript.
2. Create quiz questions that cover concepts, definitions, applications, and insights from the transcript. Vary their style and difficulty.
3. Each question must have at least 4 answer options (A, B, C, D).
4. The correct answer is the letter of the correct option (for example "A").
5. Do not include information about personnel, course structure, or tools; focus only on the educational content.
6. Use the same language as the transcript.
7. Return only valid JSON without markdown, in exactly this format:

[
  "sessionName",
  [
    {{
      "question": "Question text",
      "options": ["Option A text", "Option B text", "Option C text", "Option D text"],
      "answer": "A",
      "explanation": "Why the correct answer is correct."
    }}
  ]
]

Transcript:
\"\"\"
{transcript}
\"\"\""""

PROMPT_SUMMARY_SYSTEM = """Summarize the following transcript in a short and concise manner, recapping only the critical details.
Also generate a session name. The user may request that you focus on a particular topic within the transcript.
The final JSON format should be:
[
  "sessionName",
  "summary"
]

Transcript:
{transcript}

Requirements:
- Return only the JSON array in the exact format specified.
- Index 0: A short sessionName (string).
- Index 1: Transcript summary.
- No disclaimers or extraneous commentary.
- Return in the same language as the transcript."""

PROMPT_CHAT_SYSTEM = """You have the following transcript as context:
{transcript}

The user will ask a question or talk about the transcript. Use the transcript to inform your answer.
If the question is unrelated or cannot be answered from the transcript, say so politely.
Also generate a short yet descriptive chat name.

The final JSON format should be:
[
  "chatName",
  "answer"
]

Requirements:
- Return only the JSON array in the exact format specified.
- Index 0: A short chat name (string).
- Index 1: The answer to the user question, based on the transcript context.
- Politely, yet firmly decline to answer outside of the transcript context.
- Ensure the JSON is valid and can be parsed.
- Answer in the language that the user uses."""


@dataclass(frozen=True)
class PromptRecord:
    prompt_id: str
    name: str
    template: str


PROMPT_RECORDS: List[PromptRecord] = [
    PromptRecord("flashcards", "Flashcard session", PROMPT_FLASHCARDS),
    PromptRecord("additional_flashcards", "Additional flashcards", PROMPT_ADDITIONAL_FLASHCARDS),
    PromptRecord("quiz", "Multiple-choice quiz", PROMPT_QUIZ),
    PromptRecord("summary_system", "Summary (system prompt)", PROMPT_SUMMARY_SYSTEM),
    PromptRecord("chat_system", "AI chat (system prompt)", PROMPT_CHAT_SYSTEM),
]


def get_prompt_template(prompt_id: str) -> str:
    safe_id = str(prompt_id or "").strip()
    for record in PROMPT_RECORDS:
        if record.prompt_id == safe_id:
            return record.template
    raise KeyError(f"Unknown prompt id: {safe_id}")


def render_prompt(prompt_id: str, **values) -> str:
    return get_prompt_template(prompt_id).format(**values).strip()


def get_prompt_metadata() -> Dict[str, object]:
    return {
        "version": PROMPT_REGISTRY_VERSION,
        "count": len(PROMPT_RECORDS),
        "ids": [record.prompt_id for record in PROMPT_RECORDS],
    }
