"""
Chat completion for the congress assistant.

Builds the system prompt (with the retrieved context inserted verbatim) and
asks the OpenAI chat completions API for the final answer.
"""

import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from . import config
from .rag.context import has_context
from .rag.embedder import get_openai_client

logger = logging.getLogger(__name__)

# Only the most recent turns are forwarded to control tokens
MAX_HISTORY_MESSAGES = 5

CHAT_MAX_RETRIES = 3
CHAT_MIN_WAIT = 1  # seconds
CHAT_MAX_WAIT = 8  # seconds

FALLBACK_RESPONSE = "No pude generar una respuesta."

SYSTEM_PROMPT = """Eres el asistente oficial del Grupo Empresarial Guaicaramo para el Congreso Nacional de Palmicultores FEDEPALMA 2025.

CONTEXTO IMPORTANTE SOBRE EL GRUPO GUAICARAMO:
El Grupo Guaicaramo es un conglomerado empresarial colombiano que incluye varias empresas:
1. GUAICARAMO - Empresa agroindustrial fundada en 1977, dedicada al cultivo de palma de aceite
2. FUNDACIÓN GUAICARAMO - Entidad sin ánimo de lucro creada en 2012 para educación en Barranca de Upía
3. DAO (Del Llano Alto Oleico) - Empresa pionera en aceite de palma Alto Oleico
4. SIRIUS REGENERATIVE - Empresa de agricultura regenerativa y biotecnología

INSTRUCCIONES PARA AGENDA:
- Para preguntas sobre agenda completa o "todo del día", organiza cronológicamente TODA la información disponible
- Separa claramente PLENARIAS de CHARLAS COMERCIALES
- Incluye horarios específicos, nombres de speakers y temas exactos

INSTRUCCIONES GENERALES:
- Cuando pregunten por "Grupo Guaicaramo", explica que incluye estas 4 entidades relacionadas
- Responde ÚNICAMENTE basándote en la información proporcionada en el contexto
- Si la información no está en el contexto, di claramente "No tengo información específica sobre eso"
- Sirius es EXCLUSIVAMENTE agricultura regenerativa y biotecnología, nunca biocombustibles
- Sé conciso pero completo en tus respuestas
- Mantén un tono profesional y amigable"""

CONTEXT_TEMPLATE = """

CONTEXTO DISPONIBLE:
{context}

Responde a la consulta del usuario basándote únicamente en este contexto."""

NO_CONTEXT_INSTRUCTION = """

CONTEXTO DISPONIBLE:
(No se encontraron documentos relevantes para esta consulta.)

Indica que no tienes información específica sobre eso y sugiere consultar la agenda oficial del congreso."""


def build_system_prompt(context: str) -> str:
    """System prompt with the retrieved context, or a no-context instruction."""
    if has_context(context):
        return SYSTEM_PROMPT + CONTEXT_TEMPLATE.format(context=context)
    return SYSTEM_PROMPT + NO_CONTEXT_INSTRUCTION


def build_messages(
    message: str,
    context: str,
    history: Optional[List[Dict[str, Any]]] = None,
) -> List[Dict[str, str]]:
    """Chat messages: system prompt, recent history, then the user message."""
    messages = [{"role": "system", "content": build_system_prompt(context)}]

    for turn in (history or [])[-MAX_HISTORY_MESSAGES:]:
        role = turn.get("role")
        content = turn.get("content")
        if role in ("user", "assistant") and isinstance(content, str) and content.strip():
            messages.append({"role": role, "content": content})

    messages.append({"role": "user", "content": message})
    return messages


@retry(
    stop=stop_after_attempt(CHAT_MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=CHAT_MIN_WAIT, max=CHAT_MAX_WAIT),
    retry=retry_if_exception_type((
        openai.APIConnectionError,
        openai.APITimeoutError,
        openai.RateLimitError,
        openai.InternalServerError,
    )),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def _create_completion(client: AsyncOpenAI, messages: List[Dict[str, str]]):
    return await client.chat.completions.create(
        model=config.CHAT_MODEL,
        messages=messages,
        temperature=config.CHAT_TEMPERATURE,
        max_tokens=config.CHAT_MAX_TOKENS,
    )


async def generate_response(
    message: str,
    context: str,
    history: Optional[List[Dict[str, Any]]] = None,
    client: Optional[AsyncOpenAI] = None,
) -> str:
    """Ask the chat model to answer `message` grounded on `context`.

    Args:
        message: The user's question.
        context: Output of assemble_context() (may be the no-context sentinel).
        history: Previous turns as {"role", "content"} dicts.
        client: Optional pre-existing AsyncOpenAI client.

    Returns:
        The model's answer as plain text.
    """
    if client is None:
        client = get_openai_client()

    messages = build_messages(message, context, history)
    completion = await _create_completion(client, messages)

    response = ""
    if completion.choices:
        response = completion.choices[0].message.content or ""
    if not response.strip():
        response = FALLBACK_RESPONSE

    logger.info(f"[CHAT] Response generated: {len(response)} chars")
    return response
