"""Biology question generation with Gemini.

Builds a structured-output prompt per question type and validates the
returned JSON into ``GeneratedQuestion`` objects. Image-based questions
take two calls: one for the question text and an image prompt, then one to
the image model for the diagram itself.
"""

import asyncio
import base64
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from google import genai
from google.genai import types
from pydantic import ValidationError

from bioquest.config import get_settings
from bioquest.constants import LANGUAGE_NAMES
from bioquest.models.generation import GeneratedQuestion, GenerationRequest, QuestionType
from bioquest.models.question import Question
from bioquest.services.errors import GeneratedContentError
from bioquest.services.gemini_client import get_gemini_client

logger = logging.getLogger(__name__)


_STYLE_GUIDELINES = {
    QuestionType.SHORT_ANSWER: (
        "For these Short Answer questions, create a mix of types: some asking for "
        "definitions, some for explanations of processes, and some for "
        "comparing/contrasting concepts."
    ),
    QuestionType.MULTIPLE_CHOICE: (
        "For these Multiple Choice questions, ensure the incorrect options "
        "(distractors) are plausible and related to the topic. Avoid trivial or "
        "obviously wrong answers."
    ),
    QuestionType.FILL_IN_THE_BLANKS: (
        "For these Fill in the Blanks questions, vary the sentence structure and "
        "the position of the blank (`____`)."
    ),
    QuestionType.TRUE_FALSE: (
        "For these True/False questions, formulate statements that require careful "
        "consideration of the topic, not just simple fact recall."
    ),
}

_ANSWER_FIELDS = '\nEach object must have two required fields: "text" and "answer".'


def _format_instructions(request: GenerationRequest) -> tuple[str, str]:
    """Return (format rule, JSON rule) for the request's question type."""
    qtype = request.question_type
    json_rules = "The response must be a valid JSON array of objects."

    if qtype == QuestionType.MULTIPLE_CHOICE:
        return (
            "Each question MUST be a multiple-choice question with exactly 4 distinct "
            "options, labeled A, B, C, and D.",
            json_rules + _ANSWER_FIELDS
            + '\n- The "text" field MUST contain the question followed by the 4 options, '
            'formatted like: "Question text? A) Option 1 B) Option 2 C) Option 3 D) Option 4".'
            '\n- The "answer" field MUST contain ONLY the capital letter of the correct '
            'option (e.g., "A", "B", "C", or "D").',
        )
    if qtype == QuestionType.FILL_IN_THE_BLANKS:
        return (
            "Each question MUST be a fill-in-the-blanks style question. Use one or more "
            "underscores `____` to represent the blank part.",
            json_rules + _ANSWER_FIELDS
            + '\n- "text": The question text with blanks (e.g., "The powerhouse of the cell is the ____.").'
            '\n- "answer": The word or phrase that correctly fills the blank. If there are '
            "multiple blanks, provide the answers in order, separated by a comma.",
        )
    if qtype == QuestionType.TRUE_FALSE:
        return (
            'Each question MUST be a statement that can be answered with "True" or "False".',
            json_rules + _ANSWER_FIELDS
            + '\n- "text": The statement to be evaluated (e.g., "Mitochondria are found in plant cells.").'
            '\n- "answer": The correct answer, which must be either "True" or "False".',
        )

    format_rule = f'Each question must be of the type: "{qtype.value}".'
    if request.answer_required:
        return (
            format_rule,
            json_rules + _ANSWER_FIELDS
            + '\n- "text": The question text.'
            '\n- "answer": A concise and correct answer to the question.',
        )
    return (
        format_rule,
        json_rules + '\nEach object must have one required field: "text". '
        'Do not include an "answer" field.',
    )


def _syllabus_instruction(request: GenerationRequest) -> str:
    if request.syllabus_only:
        return (
            "You are an expert in creating biology question papers for the West Bengal "
            "Board of Secondary Education (WBBSE) curriculum, specifically for Bengali "
            f"Medium school students. Your task is to generate {request.count} unique, "
            "high-quality questions based on the criteria below.\n"
            "**CRITICAL RULE: The content of all questions and answers MUST strictly adhere "
            "to the topics, scope, and depth of the official WBBSE Biology syllabus for the "
            "specified class. DO NOT include any content from other educational boards like "
            "CBSE, ICSE, etc.**"
        )
    return (
        "You are an expert in creating biology question papers. Your task is to generate "
        f"{request.count} unique, high-quality questions based on the criteria below."
    )


def build_generation_prompt(
    request: GenerationRequest,
    existing_pool: Sequence[Question],
) -> str:
    """Build the text-question prompt, including the exclusion list."""
    language = LANGUAGE_NAMES.get(request.language, "English")
    format_rule, json_rules = _format_instructions(request)
    existing = "\n".join(f"- {q.text}" for q in existing_pool) or "None"

    lines = [
        _syllabus_instruction(request),
        "",
        f"**CRITICAL INSTRUCTION: All generated text, including questions and answers, "
        f"MUST be in the {language} language.**",
        "",
        "Criteria:",
        f"- Class: {request.class_level}",
        f'- Chapter: "{request.chapter or "Various Topics"}"',
        f"- Marks for each question: {request.marks}",
        f"- Difficulty: {request.difficulty.value}",
        "",
        "Question Style Guidelines:",
        "- **Variety is key.** Create a mix of questions that test different cognitive "
        "skills: some should test basic recall (e.g., 'What is...?'), others should "
        "require explanation (e.g., 'Explain why...'), and some should ask for analysis "
        "or comparison (e.g., 'Differentiate between...'). Use diverse sentence "
        "structures and avoid starting every question the same way.",
        f"- {_STYLE_GUIDELINES.get(request.question_type, '')}",
        "",
        "Specific Instructions for this Request:",
        f"- {format_rule}",
    ]
    if request.keywords:
        lines.append(
            "- The questions must incorporate or be related to the following keywords: "
            f"{request.keywords}."
        )
    lines += [
        "",
        "IMPORTANT: Do NOT repeat any of the following questions that have been used before:",
        existing,
        "",
        "Output Format:",
        json_rules,
    ]
    return "\n".join(lines)


def build_response_schema(request: GenerationRequest) -> Dict[str, Any]:
    """JSON schema for an array of ``{text, answer}`` objects."""
    required = ["text", "answer"] if request.answer_required else ["text"]
    return {
        "type": "ARRAY",
        "items": {
            "type": "OBJECT",
            "properties": {
                "text": {
                    "type": "STRING",
                    "description": (
                        "The full text of the question. For MCQs, this includes the "
                        "question and 4 options (A, B, C, D)."
                    ),
                },
                "answer": {
                    "type": "STRING",
                    "description": (
                        "A brief answer. For MCQs, this MUST be the capital letter of the "
                        "correct option (e.g., 'A'). For True/False, it MUST be 'True' or 'False'."
                    ),
                },
            },
            "required": required,
        },
    }


def parse_generated_questions(
    response_text: Optional[str],
    request: GenerationRequest,
) -> List[GeneratedQuestion]:
    """Validate a JSON response into generated questions.

    Raises:
        GeneratedContentError: Invalid JSON, blank text, or a missing required answer
    """
    if response_text is None:
        raise GeneratedContentError("Gemini API returned empty response")
    try:
        data = json.loads(response_text.strip())
    except json.JSONDecodeError as e:
        raise GeneratedContentError(f"Gemini API returned invalid JSON: {e}") from e

    if not isinstance(data, list):
        logger.error(f"AI did not return a JSON array: {str(data)[:200]}")
        return []

    questions: List[GeneratedQuestion] = []
    for item in data:
        try:
            question = GeneratedQuestion.model_validate(item)
        except ValidationError as e:
            raise GeneratedContentError(f"Invalid generated question: {e}") from e
        if request.answer_required and not (question.answer or "").strip():
            raise GeneratedContentError(
                f"Generated question is missing its answer: {question.text[:80]}"
            )
        if not request.answer_required:
            question = question.model_copy(update={"answer": None})
        questions.append(question)
    return questions


def _build_image_question_prompt(request: GenerationRequest) -> str:
    language = LANGUAGE_NAMES.get(request.language, "English")
    answer_note = (
        "" if request.answer_required
        else "This field should be an empty string if an answer is not required."
    )
    return f"""You are an expert biology teacher creating a question for an exam.
Your task is to generate a single JSON object containing "questionText", "answerText", and "imagePrompt".

**Instructions:**
1.  **questionText**: Create a biology question based on the criteria below. This question MUST refer to a diagram (e.g., "Identify the part labeled 'X'...", "Describe the process shown in the diagram...").
2.  **answerText**: Provide a concise, correct answer to the question. {answer_note}
3.  **imagePrompt**: Write a clear and detailed prompt for an image generation AI. This prompt should describe the exact diagram needed to answer the question. It should be simple, biologically accurate, and include instructions for any necessary labels (e.g., "Label the nucleus with the letter 'A'.").
4.  All generated text MUST be in the **{language}** language.

**Criteria for the Question:**
- Class: {request.class_level}
- Topic: "{request.chapter}"
- Difficulty: {request.difficulty.value}
- Marks: {request.marks}

**Output Format:**
Return ONLY a single valid JSON object. Do not add any text before or after the JSON.
"""


def _image_question_schema(answer_required: bool) -> Dict[str, Any]:
    properties: Dict[str, Any] = {
        "questionText": {
            "type": "STRING",
            "description": "The biology question that requires a diagram.",
        },
        "imagePrompt": {
            "type": "STRING",
            "description": "A detailed prompt for an AI to generate the necessary diagram.",
        },
    }
    required = ["questionText", "imagePrompt"]
    if answer_required:
        properties["answerText"] = {
            "type": "STRING",
            "description": "The answer to the question.",
        }
        required.append("answerText")
    return {"type": "OBJECT", "properties": properties, "required": required}


def _image_data_url(response: Any) -> str:
    """Find the first inline image part and encode it as a data URL."""
    candidates = getattr(response, "candidates", None) or []
    parts = []
    if candidates and candidates[0].content is not None:
        parts = candidates[0].content.parts or []

    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            data = inline.data
            encoded = data if isinstance(data, str) else base64.b64encode(data).decode("ascii")
            return f"data:{inline.mime_type or 'image/png'};base64,{encoded}"

    raise GeneratedContentError("AI failed to generate a valid image from the provided prompt.")


async def _generate_image_question(
    client: genai.Client,
    request: GenerationRequest,
) -> List[GeneratedQuestion]:
    settings = get_settings()

    text_response = await asyncio.to_thread(
        client.models.generate_content,
        model=settings.model_name,
        contents=_build_image_question_prompt(request),
        config=types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=_image_question_schema(request.answer_required),
        ),
    )
    try:
        result = json.loads((text_response.text or "").strip())
    except json.JSONDecodeError as e:
        raise GeneratedContentError(f"Gemini API returned invalid JSON: {e}") from e

    question_text = result.get("questionText") if isinstance(result, dict) else None
    image_prompt = result.get("imagePrompt") if isinstance(result, dict) else None
    if not question_text or not image_prompt:
        raise GeneratedContentError("AI failed to generate the question text or image prompt.")

    await asyncio.sleep(settings.image_step_delay_seconds)

    image_response = await asyncio.to_thread(
        client.models.generate_content,
        model=settings.image_model_name,
        contents=image_prompt,
        config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
    )

    answer = result.get("answerText") if request.answer_required else None
    if request.answer_required and not answer:
        raise GeneratedContentError("AI failed to generate an answer for the diagram question.")

    return [GeneratedQuestion(
        text=question_text,
        answer=answer,
        image_data_url=_image_data_url(image_response),
    )]


async def generate_questions(
    request: GenerationRequest,
    existing_pool: Sequence[Question],
    api_key: Optional[str] = None,
    client: Optional[genai.Client] = None,
) -> List[GeneratedQuestion]:
    """Generate one batch of questions for ``request``.

    Args:
        request: What to generate
        existing_pool: Questions to avoid repeating
        api_key: Caller's own Gemini key
        client: Pre-built client (skips key resolution)

    Returns:
        Validated generated questions (may be empty)

    Raises:
        ValueError: No API key configured
        GeneratedContentError: The response did not match the request
        Exception: Gemini API errors propagate unchanged for classification
    """
    client = client or get_gemini_client(api_key)

    try:
        if request.question_type == QuestionType.IMAGE_BASED:
            return await _generate_image_question(client, request)

        settings = get_settings()
        response = await asyncio.to_thread(
            client.models.generate_content,
            model=settings.model_name,
            contents=build_generation_prompt(request, existing_pool),
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=build_response_schema(request),
            ),
        )
        return parse_generated_questions(response.text, request)
    except Exception as e:
        logger.error(f"Error generating questions with AI: {e}")
        raise
