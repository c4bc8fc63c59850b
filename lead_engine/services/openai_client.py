"""
OpenAI helpers: schema-constrained JSON generation through the circuit breaker.
"""
import json
import logging
from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError

from lead_engine.config import OPENAI_MODEL, OPENAI_TEMPERATURE
from lead_engine.errors import ExternalCallFailure, ValidationFailure
from lead_engine.extensions import openai_client as client

logger = logging.getLogger('services.openai')

T = TypeVar('T', bound=BaseModel)


def _chat_completion(**kwargs):
    """Route chat completion through the OpenAI circuit breaker."""
    from lead_engine.services.circuit_breaker import get_breaker
    cb = get_breaker('openai')
    return cb.call(client.chat.completions.create, **kwargs)


def _schema_instructions(schema: Type[BaseModel]) -> str:
    return (
        "\n\nRespond with a single JSON object that conforms to this JSON Schema. "
        "Do not wrap it in markdown.\n\n"
        + json.dumps(schema.model_json_schema(), indent=2)
    )


def generate_structured(system_prompt: str, user_prompt: str, schema: Type[T], model: str = None) -> T:
    """
    Ask the model for a JSON object and validate it against `schema`.

    Raises:
        ExternalCallFailure: client missing, provider error, or open circuit.
        ValidationFailure:   completion is not JSON or does not match `schema`.
    """
    if client is None:
        raise ExternalCallFailure('openai', 'OPENAI_API_KEY not configured')

    try:
        response = _chat_completion(
            model=model or OPENAI_MODEL,
            messages=[
                {"role": "system", "content": system_prompt + _schema_instructions(schema)},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
            temperature=OPENAI_TEMPERATURE,
        )
    except Exception as e:
        logger.error("OpenAI call failed for %s: %s", schema.__name__, e)
        raise ExternalCallFailure('openai', str(e)) from e

    raw = response.choices[0].message.content or ''
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Non-JSON completion for %s: %s", schema.__name__, raw[:200])
        raise ValidationFailure(f"{schema.__name__}: completion is not valid JSON", raw_output=raw) from e

    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        logger.warning("Schema validation failed for %s: %d error(s)", schema.__name__, e.error_count())
        raise ValidationFailure(
            f"{schema.__name__}: completion does not match schema",
            raw_output=raw,
            errors=e.errors(include_url=False),
        ) from e
