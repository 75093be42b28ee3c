"""Embedding and verification provider registry.

A provider bundles the two capabilities the semantic engine needs from a
model vendor: turning text into an embedding vector, and judging whether two
prompts mean the same thing. The same backend always fulfils both roles.

Each concrete provider knows how to create its LangChain models:
  - openai : OpenAIEmbeddings      + ChatOpenAI judge
  - mistral: MistralAIEmbeddings   + ChatMistralAI judge
  - claude : VoyageAIEmbeddings    + ChatAnthropic judge
"""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel, Field, SecretStr

from promptcache.constants import (
    AFFIRMATIVE_VERDICT,
    DEADLINE_POLL_SECONDS,
    DEFAULT_PROVIDER_TIMEOUT_SECONDS,
    JUDGE_SYSTEM_PROMPT,
    JUDGE_USER_TEMPLATE,
)
from promptcache.exception.api_exceptions import (
    DeadlineExceededError,
    InvalidProviderError,
    PromptCacheException,
    ProviderFailureError,
)
from promptcache.semantic.deadline import Deadline
from promptcache.semantic.vector import as_float32

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderSettings(BaseModel):
    """Backend-specific credentials and model identifiers.

    Attributes:
        api_key: API key for the vendor's chat (and usually embedding) API
        base_url: Optional endpoint override
        embedding_model: Embedding model (provider default if None)
        verification_model: Judge chat model (provider default if None)
        embedding_api_key: Separate key for the embedding API, when it differs
        timeout_seconds: Per-request timeout applied to every outbound call
    """

    api_key: str = Field(default="")
    base_url: Optional[str] = Field(default=None)
    embedding_model: Optional[str] = Field(default=None)
    verification_model: Optional[str] = Field(default=None)
    embedding_api_key: Optional[str] = Field(default=None)
    timeout_seconds: float = Field(default=DEFAULT_PROVIDER_TIMEOUT_SECONDS)


class EmbeddingProvider(ABC):
    """Capability set every provider backend implements."""

    name: str = ""

    @abstractmethod
    def embed(self, text: str, deadline: Optional[Deadline] = None) -> List[float]:
        """Embed text into a float32 vector.

        Raises:
            ProviderFailureError: Backend unreachable, non-success status or
                no embedding data in the reply
            DeadlineExceededError: Deadline elapsed or was cancelled before
                the call returned
        """

    @abstractmethod
    def check_similarity(
        self, prompt_a: str, prompt_b: str, deadline: Optional[Deadline] = None
    ) -> bool:
        """Judge whether two prompts have the same intent and meaning.

        Anything other than an exact affirmative verdict is False.

        Raises:
            ProviderFailureError: Backend unreachable, returned an error or
                gave an empty verdict
            DeadlineExceededError: Deadline elapsed or was cancelled before
                the call returned
        """


def _message_text(message: Any) -> str:
    """Extract plain text from a chat model reply."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return ""


class LangChainProvider(EmbeddingProvider):
    """Provider backed by a LangChain embeddings model and chat model.

    Models are created lazily on first use so that switching to a backend
    never fails on construction; misconfiguration surfaces as a
    ProviderFailureError on the first call instead.

    Subclasses supply the two static model factories and their defaults.
    """

    default_embedding_model: str = ""
    default_verification_model: str = ""

    def __init__(self, settings: Optional[ProviderSettings] = None):
        self.settings = settings or ProviderSettings()
        self._embeddings: Optional[Embeddings] = None
        self._judge: Optional[BaseChatModel] = None
        self._init_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(thread_name_prefix=f"{self.name}-call")

    @property
    def embedding_model(self) -> str:
        return self.settings.embedding_model or self.default_embedding_model

    @property
    def verification_model(self) -> str:
        return self.settings.verification_model or self.default_verification_model

    @staticmethod
    @abstractmethod
    def create_embeddings_model(
        model_name: str, settings: ProviderSettings
    ) -> Embeddings:
        """Create the LangChain embeddings model for this backend."""

    @staticmethod
    @abstractmethod
    def create_judge_model(model_name: str, settings: ProviderSettings) -> BaseChatModel:
        """Create the LangChain chat model used as the equivalence judge."""

    def _get_embeddings_model(self) -> Embeddings:
        with self._init_lock:
            if self._embeddings is None:
                self._embeddings = self._build(
                    self.create_embeddings_model, self.embedding_model
                )
            return self._embeddings

    def _get_judge_model(self) -> BaseChatModel:
        with self._init_lock:
            if self._judge is None:
                self._judge = self._build(
                    self.create_judge_model, self.verification_model
                )
            return self._judge

    def _build(self, factory: Any, model_name: str) -> Any:
        try:
            model = factory(model_name, self.settings)
        except PromptCacheException:
            raise
        except Exception as e:
            logger.error(
                f"Failed to create {self.name} model {model_name}: {e}", exc_info=True
            )
            raise ProviderFailureError(
                f"{self.name} model {model_name} could not be created: {e}",
                provider=self.name,
            ) from e

        logger.info(f"Created {self.name} model {model_name}")
        return model

    def _call_with_deadline(
        self, deadline: Optional[Deadline], call: Callable[..., T], *args: Any
    ) -> T:
        """Run an outbound call bounded by the caller's deadline.

        Without a deadline the call runs inline. Otherwise it runs on the
        provider's executor while the caller waits in short slices, giving up
        as soon as the deadline expires or is cancelled. A result that arrives
        after that point is discarded. The abandoned call itself is still
        bounded by the client timeout.

        Raises:
            DeadlineExceededError: Deadline elapsed or cancelled before the
                call returned
        """
        if deadline is None:
            return call(*args)

        future = self._executor.submit(call, *args)
        while True:
            try:
                remaining = deadline.remaining()
            except DeadlineExceededError:
                future.cancel()
                logger.warning(f"{self.name} call abandoned: deadline exceeded")
                raise

            wait = DEADLINE_POLL_SECONDS
            if remaining is not None:
                wait = min(wait, remaining)

            try:
                result = future.result(timeout=wait)
            except FuturesTimeoutError:
                continue

            deadline.remaining()
            return result

    def embed(self, text: str, deadline: Optional[Deadline] = None) -> List[float]:
        if deadline is not None:
            deadline.remaining()
        embeddings = self._get_embeddings_model()

        try:
            raw = self._call_with_deadline(deadline, embeddings.embed_query, text)
        except DeadlineExceededError:
            raise
        except Exception as e:
            logger.error(f"{self.name} embedding request failed: {e}", exc_info=True)
            raise ProviderFailureError(
                f"{self.name} embedding request failed: {e}", provider=self.name
            ) from e

        if not raw:
            raise ProviderFailureError(
                "no embedding data returned", provider=self.name
            )

        try:
            return as_float32(raw)
        except (TypeError, ValueError) as e:
            raise ProviderFailureError(
                f"{self.name} returned a malformed embedding: {e}", provider=self.name
            ) from e

    def check_similarity(
        self, prompt_a: str, prompt_b: str, deadline: Optional[Deadline] = None
    ) -> bool:
        if deadline is not None:
            deadline.remaining()
        judge = self._get_judge_model()

        messages = [
            SystemMessage(content=JUDGE_SYSTEM_PROMPT),
            HumanMessage(
                content=JUDGE_USER_TEMPLATE.format(first=prompt_a, second=prompt_b)
            ),
        ]

        try:
            reply = self._call_with_deadline(deadline, judge.invoke, messages)
        except DeadlineExceededError:
            raise
        except Exception as e:
            logger.error(f"{self.name} verification request failed: {e}", exc_info=True)
            raise ProviderFailureError(
                f"{self.name} verification request failed: {e}", provider=self.name
            ) from e

        verdict = _message_text(reply)
        if not verdict:
            raise ProviderFailureError(
                "no verdict returned by the judge", provider=self.name
            )

        logger.debug(f"{self.name} judge verdict: {verdict[:20]!r}")
        return verdict == AFFIRMATIVE_VERDICT


class OpenAIProvider(LangChainProvider):
    """OpenAI provider.

    Embeddings: OpenAIEmbeddings (text-embedding-3-small)
    Judge     : ChatOpenAI (gpt-4o-mini)
    """

    name = "openai"
    default_embedding_model = "text-embedding-3-small"
    default_verification_model = "gpt-4o-mini"

    @staticmethod
    def create_embeddings_model(
        model_name: str, settings: ProviderSettings
    ) -> Embeddings:
        from langchain_openai import OpenAIEmbeddings

        return OpenAIEmbeddings(
            model=model_name,
            api_key=SecretStr(settings.embedding_api_key or settings.api_key),
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            max_retries=0,
        )

    @staticmethod
    def create_judge_model(model_name: str, settings: ProviderSettings) -> BaseChatModel:
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=model_name,
            api_key=SecretStr(settings.api_key),
            base_url=settings.base_url,
            temperature=0,
            timeout=settings.timeout_seconds,
            max_retries=0,
        )


class MistralProvider(LangChainProvider):
    """Mistral AI provider.

    Embeddings: MistralAIEmbeddings (mistral-embed)
    Judge     : ChatMistralAI (mistral-small-latest)
    """

    name = "mistral"
    default_embedding_model = "mistral-embed"
    default_verification_model = "mistral-small-latest"

    @staticmethod
    def create_embeddings_model(
        model_name: str, settings: ProviderSettings
    ) -> Embeddings:
        from langchain_mistralai import MistralAIEmbeddings

        kwargs: Dict[str, Any] = {}
        if settings.base_url:
            kwargs["endpoint"] = settings.base_url

        return MistralAIEmbeddings(
            model=model_name,
            api_key=SecretStr(settings.embedding_api_key or settings.api_key),
            timeout=int(settings.timeout_seconds),
            max_retries=0,
            **kwargs,
        )

    @staticmethod
    def create_judge_model(model_name: str, settings: ProviderSettings) -> BaseChatModel:
        from langchain_mistralai import ChatMistralAI

        kwargs: Dict[str, Any] = {}
        if settings.base_url:
            kwargs["endpoint"] = settings.base_url

        return ChatMistralAI(
            model=model_name,
            api_key=SecretStr(settings.api_key),
            temperature=0,
            timeout=int(settings.timeout_seconds),
            max_retries=0,
            **kwargs,
        )


class ClaudeProvider(LangChainProvider):
    """Anthropic provider.

    Anthropic has no embeddings API; embeddings come from Voyage AI, which
    needs its own key (``embedding_api_key``).

    Embeddings: VoyageAIEmbeddings (voyage-3)
    Judge     : ChatAnthropic (claude-3-haiku-20240307)
    """

    name = "claude"
    default_embedding_model = "voyage-3"
    default_verification_model = "claude-3-haiku-20240307"

    @staticmethod
    def create_embeddings_model(
        model_name: str, settings: ProviderSettings
    ) -> Embeddings:
        if not settings.embedding_api_key:
            raise ProviderFailureError(
                "VOYAGE_API_KEY not set - required for Claude provider embeddings",
                provider="claude",
            )

        from langchain_voyageai import VoyageAIEmbeddings

        return VoyageAIEmbeddings(
            model=model_name,
            voyage_api_key=SecretStr(settings.embedding_api_key),
        )

    @staticmethod
    def create_judge_model(model_name: str, settings: ProviderSettings) -> BaseChatModel:
        from langchain_anthropic import ChatAnthropic

        kwargs: Dict[str, Any] = {}
        if settings.base_url:
            kwargs["base_url"] = settings.base_url

        return ChatAnthropic(
            model=model_name,
            api_key=SecretStr(settings.api_key),
            max_tokens=10,
            temperature=0,
            timeout=settings.timeout_seconds,
            max_retries=0,
            **kwargs,
        )


PROVIDER_REGISTRY: Dict[str, Type[EmbeddingProvider]] = {}


def register_provider(name: str, provider_class: Type[EmbeddingProvider]) -> None:
    """Register custom provider.

    Args:
        name: Provider identifier
        provider_class: EmbeddingProvider implementation
    """
    PROVIDER_REGISTRY[name.strip().lower()] = provider_class


for _provider_class in (OpenAIProvider, MistralProvider, ClaudeProvider):
    register_provider(_provider_class.name, _provider_class)


def get_provider_class(
    provider_name: str,
    registry: Optional[Dict[str, Type[EmbeddingProvider]]] = None,
) -> Type[EmbeddingProvider]:
    """Get provider class by name.

    Args:
        provider_name: Provider identifier (case-insensitive)
        registry: Registry to search (module registry if None)

    Returns:
        EmbeddingProvider class

    Raises:
        InvalidProviderError: If provider not found
    """
    registry = PROVIDER_REGISTRY if registry is None else registry
    provider_class = registry.get(provider_name.strip().lower())

    if provider_class is None:
        raise InvalidProviderError(provider_name, available=sorted(registry))

    return provider_class
