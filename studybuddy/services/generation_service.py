"""OpenAI chat-completion boundary and strict JSON contract parsing.

Every generation asks the model for a JSON array. Responses are stripped of
markdown code fences, decoded, and checked against the expected shape before
anything is returned to a caller. Format errors are raised as
GenerationFormatError and are never retried; transport retries are handled
once by the OpenAI client (see extensions.init_openai).
"""

import json
import logging
import re

from openai import OpenAIError

from studybuddy.errors import ConfigError, GenerationFormatError, UpstreamError
from studybuddy.services import prompt_registry

MAX_COMPLETION_TOKENS = 15000
AUTH_FLASHCARD_COUNT = 15
PUBLIC_FLASHCARD_COUNT = 10
ADDITIONAL_FLASHCARD_COUNT = 10
QUIZ_MIN_OPTIONS = 4
OPTION_LETTERS = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ'

FLASHCARD_TEMPERATURE = 0.1
QUIZ_TEMPERATURE = 0.1
CONVERSATION_TEMPERATURE = 0.2

_FENCE_OPEN_RE = re.compile(r'^```[A-Za-z0-9_+-]*[ \t]*\n?')
_FENCE_CLOSE_RE = re.compile(r'\n?[ \t]*```$')


def strip_code_fences(raw_text):
    text = (raw_text or '').strip()
    if text.startswith('```'):
        text = _FENCE_OPEN_RE.sub('', text, count=1)
    if text.endswith('```'):
        text = _FENCE_CLOSE_RE.sub('', text, count=1)
    return text.strip()


def parse_json_array(raw_text, parse_error_message):
    text = strip_code_fences(raw_text)
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError) as e:
        raise GenerationFormatError(parse_error_message) from e
    return parsed


def _is_named_pair(parsed):
    return isinstance(parsed, list) and len(parsed) == 2 and isinstance(parsed[0], str)


def validate_flashcards(cards):
    if not isinstance(cards, list):
        raise GenerationFormatError('Invalid flashcards format received from OpenAI.')
    cleaned = []
    for card in cards:
        if not isinstance(card, dict):
            raise GenerationFormatError('Invalid flashcards format received from OpenAI.')
        question = card.get('question')
        answer = card.get('answer')
        if not isinstance(question, str) or not isinstance(answer, str):
            raise GenerationFormatError('Invalid flashcards format received from OpenAI.')
        cleaned.append({'question': question, 'answer': answer})
    return cleaned


def parse_flashcard_session(raw_text):
    parsed = parse_json_array(raw_text, 'Failed to parse flashcards JSON.')
    if not _is_named_pair(parsed) or not isinstance(parsed[1], list):
        raise GenerationFormatError('Invalid format: Expected [sessionName, [{question, answer}...]].')
    return parsed[0], validate_flashcards(parsed[1])


def parse_additional_flashcards(raw_text):
    parsed = parse_json_array(raw_text, 'Failed to parse flashcards JSON.')
    if not isinstance(parsed, list):
        raise GenerationFormatError('Invalid format: Expected [{question, answer}...].')
    return validate_flashcards(parsed)


def normalize_quiz_question(item):
    if not isinstance(item, dict):
        return None
    question = item.get('question')
    options = item.get('options')
    answer = item.get('answer')
    explanation = item.get('explanation', '')
    if not isinstance(question, str) or not isinstance(answer, str):
        return None
    if not isinstance(options, list) or len(options) < QUIZ_MIN_OPTIONS:
        return None
    if not all(isinstance(option, str) for option in options):
        return None
    if explanation is None:
        explanation = ''
    if not isinstance(explanation, str):
        return None
    letter = answer.strip().rstrip('.)').upper()
    if len(letter) != 1 or letter not in OPTION_LETTERS[:len(options)]:
        return None
    return {
        'question': question,
        'options': options,
        'answer': letter,
        'explanation': explanation,
    }


def parse_quiz(raw_text):
    parsed = parse_json_array(raw_text, 'Failed to parse quiz JSON.')
    if not _is_named_pair(parsed) or not isinstance(parsed[1], list):
        raise GenerationFormatError('Invalid format: Expected [sessionName, [{question, options, answer, explanation}...]].')
    questions = []
    for item in parsed[1]:
        normalized = normalize_quiz_question(item)
        if normalized is None:
            raise GenerationFormatError('Invalid quiz format received from OpenAI.')
        questions.append(normalized)
    return parsed[0], questions


def parse_named_text(raw_text, kind, text_label):
    parsed = parse_json_array(raw_text, f'Failed to parse {kind} JSON.')
    if not _is_named_pair(parsed) or not isinstance(parsed[1], str):
        raise GenerationFormatError(f'Invalid format: Expected [sessionName, {text_label}].')
    return parsed[0], parsed[1]


def chat_completion(client, model, messages, temperature):
    if client is None:
        raise ConfigError('OpenAI API key is not configured.')
    try:
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=MAX_COMPLETION_TOKENS,
            temperature=temperature,
        )
    except OpenAIError as e:
        raise UpstreamError('Error generating content via OpenAI.') from e
    choices = getattr(response, 'choices', None) or []
    if not choices:
        raise GenerationFormatError('Empty response received from OpenAI.')
    return str(choices[0].message.content or '').strip()


def _complete(app_ctx, messages, temperature, purpose):
    raw_text = chat_completion(
        app_ctx.openai_client,
        app_ctx.config.openai_model,
        messages,
        temperature,
    )
    app_ctx.log_event(logging.INFO, 'generation_completed', purpose=purpose, chars=len(raw_text))
    return raw_text


def _log_format_error(app_ctx, purpose, raw_text, error):
    app_ctx.logger.warning(f"Generation format error ({purpose}): {error.message} | response head: {raw_text[:200]!r}")


def generate_flashcard_session(app_ctx, transcript, card_count=AUTH_FLASHCARD_COUNT):
    prompt = prompt_registry.render_prompt('flashcards', card_count=card_count, transcript=transcript)
    raw_text = _complete(app_ctx, [{'role': 'user', 'content': prompt}], FLASHCARD_TEMPERATURE, 'flashcards')
    try:
        return parse_flashcard_session(raw_text)
    except GenerationFormatError as e:
        _log_format_error(app_ctx, 'flashcards', raw_text, e)
        raise


def _question_key(text):
    return ' '.join(str(text or '').lower().split())


def generate_additional_flashcards(app_ctx, transcript, existing_cards, card_count=ADDITIONAL_FLASHCARD_COUNT):
    existing_questions = [card.get('question', '') for card in existing_cards or [] if isinstance(card, dict)]
    listed = '\n'.join(f'- {question}' for question in existing_questions) or '- (none)'
    prompt = prompt_registry.render_prompt(
        'additional_flashcards',
        card_count=card_count,
        existing_questions=listed,
        transcript=transcript,
    )
    raw_text = _complete(app_ctx, [{'role': 'user', 'content': prompt}], FLASHCARD_TEMPERATURE, 'additional_flashcards')
    try:
        cards = parse_additional_flashcards(raw_text)
    except GenerationFormatError as e:
        _log_format_error(app_ctx, 'additional_flashcards', raw_text, e)
        raise

    seen = {_question_key(question) for question in existing_questions}
    fresh = []
    for card in cards:
        key = _question_key(card['question'])
        if not key or key in seen:
            continue
        seen.add(key)
        fresh.append(card)
    return fresh[:card_count]


def generate_quiz(app_ctx, transcript):
    prompt = prompt_registry.render_prompt('quiz', transcript=transcript)
    raw_text = _complete(app_ctx, [{'role': 'user', 'content': prompt}], QUIZ_TEMPERATURE, 'quiz')
    try:
        return parse_quiz(raw_text)
    except GenerationFormatError as e:
        _log_format_error(app_ctx, 'quiz', raw_text, e)
        raise


def generate_summary(app_ctx, transcript, user_message=''):
    messages = [
        {'role': 'system', 'content': prompt_registry.render_prompt('summary_system', transcript=transcript)},
        {'role': 'user', 'content': str(user_message or '').strip()},
    ]
    raw_text = _complete(app_ctx, messages, CONVERSATION_TEMPERATURE, 'summary')
    try:
        return parse_named_text(raw_text, 'summary', 'summary')
    except GenerationFormatError as e:
        _log_format_error(app_ctx, 'summary', raw_text, e)
        raise


def generate_chat_reply(app_ctx, transcript, user_message):
    messages = [
        {'role': 'system', 'content': prompt_registry.render_prompt('chat_system', transcript=transcript)},
        {'role': 'user', 'content': str(user_message or '').strip()},
    ]
    raw_text = _complete(app_ctx, messages, CONVERSATION_TEMPERATURE, 'chat')
    try:
        return parse_named_text(raw_text, 'chat', 'answer')
    except GenerationFormatError as e:
        _log_format_error(app_ctx, 'chat', raw_text, e)
        raise
