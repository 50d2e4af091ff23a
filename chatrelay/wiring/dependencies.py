from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import logging

from chatrelay.application.ports.completion import CompletionPort
from chatrelay.application.ports.message_platform import MessagePlatformPort
from chatrelay.application.ports.thread_store import ThreadStorePort
from chatrelay.application.use_cases.build_context import BuildContextUseCase
from chatrelay.application.use_cases.handle_incoming_message import HandleIncomingMessageUseCase
from chatrelay.application.use_cases.send_reply import SendReplyUseCase
from chatrelay.application.use_cases.thread_views import ThreadViewsUseCase
from chatrelay.core.config import Settings, settings
from chatrelay.infrastructure.llm.mock_completion import MockCompletion
from chatrelay.infrastructure.llm.openai_completion import OpenAICompletion
from chatrelay.infrastructure.llm.prompts import load_system_prompt
from chatrelay.infrastructure.store.json_store import JsonThreadStore
from chatrelay.infrastructure.store.memory_store import MemoryThreadStore
from chatrelay.infrastructure.store.sql_store import SqlThreadStore
from chatrelay.infrastructure.whatsapp.mock_platform import MockWhatsAppPlatform
from chatrelay.infrastructure.whatsapp.whatsapp_client import WhatsAppClient
from chatrelay.infrastructure.whatsapp.whatsapp_platform import WhatsAppPlatform


logger = logging.getLogger(__name__)


def _is_dev(config: Settings) -> bool:
    return config.ENV.lower() in {"dev", "local"}


def build_store(config: Settings) -> ThreadStorePort:
    url = (config.STORE_URL or "").strip()
    if url == "memory://":
        logger.info("Using MemoryThreadStore")
        return MemoryThreadStore()
    if url:
        return SqlThreadStore(url, timeout=config.STORE_LOCK_TIMEOUT_SECONDS)
    if _is_dev(config):
        logger.info("Using JsonThreadStore (STORE_URL missing, ENV=dev/local)", extra={"reason": config.DATA_DIR})
        return JsonThreadStore(data_dir=config.DATA_DIR, lock_timeout=config.STORE_LOCK_TIMEOUT_SECONDS)
    raise ValueError("STORE_URL is required outside dev/local environments.")


def build_completion(config: Settings) -> CompletionPort:
    if config.COMPLETION_API_KEY and config.COMPLETION_API_KEY.strip():
        return OpenAICompletion(
            api_key=config.COMPLETION_API_KEY,
            model=config.COMPLETION_MODEL,
            system_prompt=load_system_prompt(config.SYSTEM_PROMPT, config.SYSTEM_PROMPT_FILE),
            base_url=config.COMPLETION_BASE_URL,
            temperature=config.COMPLETION_TEMPERATURE,
            max_tokens=config.COMPLETION_MAX_TOKENS,
            timeout=config.COMPLETION_TIMEOUT_SECONDS,
        )
    logger.warning("COMPLETION_API_KEY missing; using MockCompletion")
    return MockCompletion()


def build_platform(config: Settings) -> MessagePlatformPort:
    logger.info(
        "WHATSAPP_TOKEN present=%s len=%s",
        bool(config.WHATSAPP_TOKEN),
        len(config.WHATSAPP_TOKEN or ""),
    )

    if not config.WHATSAPP_TOKEN or not config.WHATSAPP_PHONE_NUMBER_ID:
        if _is_dev(config):
            logger.info("Using MockWhatsAppPlatform (token or phone number id missing, ENV=dev/local)")
            return MockWhatsAppPlatform()
        raise ValueError("WHATSAPP_TOKEN and WHATSAPP_PHONE_NUMBER_ID are required to send replies.")

    logger.info("Using real WhatsAppPlatform")
    client = WhatsAppClient(
        access_token=config.WHATSAPP_TOKEN,
        phone_number_id=config.WHATSAPP_PHONE_NUMBER_ID,
        api_version=config.WHATSAPP_GRAPH_API_VERSION,
        base_url=config.WHATSAPP_API_BASE_URL,
        timeout=config.WHATSAPP_TIMEOUT_SECONDS,
    )
    return WhatsAppPlatform(client=client)


@dataclass(frozen=True)
class Container:
    """Process-wide handles, built once and shared read-only by every request."""

    store: ThreadStorePort
    completion: CompletionPort
    platform: MessagePlatformPort
    handle_incoming_message: HandleIncomingMessageUseCase
    send_reply: SendReplyUseCase
    thread_views: ThreadViewsUseCase


def build_container(
    config: Settings,
    store: ThreadStorePort | None = None,
    completion: CompletionPort | None = None,
    platform: MessagePlatformPort | None = None,
) -> Container:
    store = store or build_store(config)
    completion = completion or build_completion(config)
    platform = platform or build_platform(config)

    send_reply = SendReplyUseCase(platform=platform, store=store)
    handle = HandleIncomingMessageUseCase(
        store=store,
        build_context=BuildContextUseCase(
            store=store,
            max_chars=config.CONTEXT_MAX_CHARS,
            max_messages=config.CONTEXT_MAX_MESSAGES,
        ),
        completion=completion,
        send_reply=send_reply,
        dedupe_events=config.DEDUPE_EVENTS,
        dedupe_window=config.DEDUPE_WINDOW,
    )
    return Container(
        store=store,
        completion=completion,
        platform=platform,
        handle_incoming_message=handle,
        send_reply=send_reply,
        thread_views=ThreadViewsUseCase(store=store),
    )


@lru_cache
def get_container() -> Container:
    return build_container(settings)


def get_handle_incoming_message_use_case() -> HandleIncomingMessageUseCase:
    return get_container().handle_incoming_message


def get_send_reply_use_case() -> SendReplyUseCase:
    return get_container().send_reply


def get_thread_views_use_case() -> ThreadViewsUseCase:
    return get_container().thread_views
