"""Multiple-choice practice question generation.

The model is asked for a JSON array of questions. Items whose correct
answer is not one of their options are dropped. If nothing usable comes
back, built-in sample questions are returned instead so the practice
screen always has content.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import structlog

from telxtab.llm.client import LLMClient, LLMError, unwrap_json_array

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT_QUESTIONS = """You write practice questions for a language learning platform.
Respond ONLY with a valid JSON array, no markdown and no commentary."""

QUESTIONS_PROMPT = """Generate {count} multiple choice questions about the following topic for a language learning platform:
TOPIC: {topic}
CONTENT: {content}

Each question should:
1. Be clear and directly related to the topic
2. Have 4 options
3. Have one correct answer
4. Include a brief explanation for why the answer is correct

Format the response as a valid JSON array with the following structure:
[
  {{
    "question": "The question text",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correctAnswer": "The correct option text (exact match to one of the options)",
    "explanation": "Brief explanation of why this is the correct answer"
  }}
]"""


@dataclass
class GeneratedQuestion:
    question: str
    options: list[str]
    correct_answer: str
    explanation: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


SAMPLE_QUESTIONS: tuple[GeneratedQuestion, ...] = (
    GeneratedQuestion(
        question="What is the most common way to say 'hello' in English?",
        options=["Hi", "Hola", "Bonjour", "Ciao"],
        correct_answer="Hi",
        explanation=(
            "While all options are greetings, only 'Hi' is an English greeting. "
            "The others are from Spanish, French, and Italian respectively."
        ),
    ),
    GeneratedQuestion(
        question="Which of these is a correct sentence structure in English?",
        options=[
            "I yesterday went to the store",
            "Yesterday I went to the store",
            "I went yesterday to store the",
            "To the store yesterday I went",
        ],
        correct_answer="Yesterday I went to the store",
        explanation=(
            "The correct sentence follows standard English subject-verb-object order, "
            "with the time adverb 'yesterday' at the beginning."
        ),
    ),
    GeneratedQuestion(
        question="Which word is a verb?",
        options=["Happy", "Jump", "Beautiful", "Table"],
        correct_answer="Jump",
        explanation=(
            "'Jump' is a verb (an action word). 'Happy' and 'Beautiful' are adjectives, "
            "and 'Table' is a noun."
        ),
    ),
    GeneratedQuestion(
        question="What is the past tense of 'eat'?",
        options=["Eated", "Ate", "Eaten", "Eating"],
        correct_answer="Ate",
        explanation=(
            "'Ate' is the simple past tense of 'eat'. 'Eaten' is the past participle, "
            "'Eating' is the present participle, and 'Eated' is incorrect."
        ),
    ),
    GeneratedQuestion(
        question="Which of these is a question word in English?",
        options=["Because", "Where", "Then", "And"],
        correct_answer="Where",
        explanation=(
            "'Where' is a question word used to ask about location. "
            "The other options are conjunctions or adverbs, not question words."
        ),
    ),
)


# Upper bound per request; the sample fallback holds this many
MAX_QUESTIONS = len(SAMPLE_QUESTIONS)


def sample_questions(count: int = 5) -> list[GeneratedQuestion]:
    return list(SAMPLE_QUESTIONS[:count])


def _parse_question(raw: Any) -> GeneratedQuestion | None:
    if not isinstance(raw, dict):
        return None
    question = raw.get("question")
    options = raw.get("options")
    correct = raw.get("correctAnswer", raw.get("correct_answer"))
    if not isinstance(question, str) or not question.strip():
        return None
    if not isinstance(options, list) or len(options) < 2:
        return None
    options = [str(o) for o in options]
    if correct not in options:
        return None
    return GeneratedQuestion(
        question=question.strip(),
        options=options,
        correct_answer=correct,
        explanation=str(raw.get("explanation", "")),
    )


def generate_multiple_choice_questions(
    client: LLMClient,
    topic: str,
    content: str = "",
    count: int = 5,
) -> list[GeneratedQuestion]:
    """Generate practice questions, falling back to samples on failure.

    ``count`` is clamped to MAX_QUESTIONS.
    """
    count = max(1, min(count, MAX_QUESTIONS))
    prompt = QUESTIONS_PROMPT.format(count=count, topic=topic, content=content)

    try:
        raw = client.simple_json(SYSTEM_PROMPT_QUESTIONS, prompt, json_mode=False)
    except LLMError as e:
        logger.warning("question_generation_failed", topic=topic, error=str(e))
        return sample_questions(count)

    raw = unwrap_json_array(raw, "questions") or []

    questions = [q for q in (_parse_question(item) for item in raw) if q is not None]
    dropped = len(raw) - len(questions)
    if dropped:
        logger.warning("question_generation_dropped_items", topic=topic, dropped=dropped)

    if not questions:
        logger.warning("question_generation_empty", topic=topic)
        return sample_questions(count)

    logger.info("questions_generated", topic=topic, count=len(questions[:count]))
    return questions[:count]
