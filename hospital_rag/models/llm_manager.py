"""
LLM Manager for handling different language model providers.
"""

import asyncio
import json
import logging
import os
import re
from typing import Dict, Any, List, Optional
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def resolve_env_vars(value: str) -> str:
    """Resolve environment variables in string values like ${VAR_NAME}."""
    if isinstance(value, str) and "${" in value:
        # Replace ${VAR_NAME} with environment variable value
        def replace_env_var(match):
            var_name = match.group(1)
            return os.getenv(var_name, match.group(0))

        return re.sub(r'\$\{([^}]+)\}', replace_env_var, value)
    return value


class StructuredOutputError(ValueError):
    """Raised when model output cannot be parsed against the expected schema."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


def parse_json_response(
    text: str,
    schema: Optional[Dict[str, Any]] = None,
    required: Optional[List[str]] = None
) -> Dict[str, Any]:
    """
    Parse a model response into a JSON object and check it against a schema.

    Only the top-level shape is checked: the payload must be an object and
    carry every key listed in ``required``, which defaults to
    ``schema["required"]``.

    Raises:
        StructuredOutputError: if the text holds no JSON object or a required
            key is missing. ``raw_text`` keeps the original text.
    """
    raw_text = text or ""

    # Extract JSON from response (in case there's extra text)
    json_match = re.search(r'\{.*\}', raw_text, re.DOTALL)
    json_str = json_match.group() if json_match else raw_text

    try:
        parsed = json.loads(json_str)
    except (json.JSONDecodeError, TypeError) as e:
        raise StructuredOutputError(f"Model response is not valid JSON: {e}", raw_text) from e

    if not isinstance(parsed, dict):
        raise StructuredOutputError("Model response is not a JSON object", raw_text)

    if required is None:
        required = (schema or {}).get("required", [])
    missing = [key for key in required if key not in parsed]
    if missing:
        raise StructuredOutputError(f"Model response is missing keys: {', '.join(missing)}", raw_text)

    return parsed


@dataclass
class LLMConfig:
    """Configuration for LLM providers."""
    provider: str
    model: str
    temperature: float = 0.7
    max_tokens: int = 1024
    api_key: Optional[str] = None
    embedding_model: Optional[str] = None

    def __post_init__(self):
        """Resolve environment variables after initialization."""
        if self.api_key:
            self.api_key = resolve_env_vars(self.api_key)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def generate(self, prompt: str, **kwargs) -> str:
        """Generate text using the LLM."""
        pass

    async def generate_json(self, prompt: str, schema: Dict[str, Any], **kwargs) -> str:
        """
        Generate raw JSON text for a schema.

        Providers without a native JSON mode get the schema appended to the prompt.
        """
        json_prompt = f"""{prompt}

Respond ONLY with a JSON object matching this JSON schema. Do not include any other text.

{json.dumps(schema, indent=2)}"""
        return await self.generate(json_prompt, **kwargs)

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Generate embeddings using the LLM."""
        pass


class GeminiProvider(LLMProvider):
    """Google Gemini provider implementation."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self.api_key = config.api_key or os.getenv("GEMINI_API_KEY")
        if not self.api_key:
            raise ValueError("Gemini API key not found")

        try:
            from google import genai
            self.client = genai.Client(api_key=self.api_key)
        except ImportError:
            raise ImportError("google-genai package not installed")

    def _build_config(self, **kwargs) -> Dict[str, Any]:
        return {
            "temperature": kwargs.get("temperature", self.config.temperature),
            "max_output_tokens": kwargs.get("max_tokens", self.config.max_tokens),
        }

    async def generate(self, prompt: str, **kwargs) -> str:
        """Generate text using Gemini."""
        try:
            response = await self.client.aio.models.generate_content(
                model=self.config.model,
                contents=prompt,
                config=self._build_config(**kwargs)
            )
            return response.text or ""
        except Exception as e:
            logger.error(f"Gemini generation error: {e}")
            raise

    async def generate_json(self, prompt: str, schema: Dict[str, Any], **kwargs) -> str:
        """Generate JSON text using Gemini's structured output mode."""
        config = self._build_config(**kwargs)
        config["response_mime_type"] = "application/json"
        config["response_schema"] = schema

        try:
            response = await self.client.aio.models.generate_content(
                model=self.config.model,
                contents=prompt,
                config=config
            )
            text = response.text or "{}"
            logger.debug(f"[Gemini {self.config.model}] Response: {text[:200]}")
            return text
        except Exception as e:
            logger.error(f"Gemini structured generation error: {e}")
            raise

    async def embed(self, text: str) -> List[float]:
        """Generate embeddings using Gemini."""
        try:
            response = await self.client.aio.models.embed_content(
                model=self.config.embedding_model or "text-embedding-004",
                contents=text
            )
            return list(response.embeddings[0].values)
        except Exception as e:
            logger.error(f"Gemini embedding error: {e}")
            raise


class OpenAIProvider(LLMProvider):
    """OpenAI provider implementation."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self.api_key = config.api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError("OpenAI API key not found")

        try:
            from openai import AsyncOpenAI
            self.client = AsyncOpenAI(api_key=self.api_key)
        except ImportError:
            raise ImportError("OpenAI package not installed")

    async def _complete(self, prompt: str, **kwargs) -> str:
        request = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
        }
        if kwargs.get("response_format"):
            request["response_format"] = kwargs["response_format"]

        response = await self.client.chat.completions.create(**request)
        return response.choices[0].message.content or ""

    async def generate(self, prompt: str, **kwargs) -> str:
        """Generate text using OpenAI."""
        try:
            return await self._complete(prompt, **kwargs)
        except Exception as e:
            logger.error(f"OpenAI generation error: {e}")
            raise

    async def generate_json(self, prompt: str, schema: Dict[str, Any], **kwargs) -> str:
        """Generate JSON text using OpenAI's JSON mode."""
        json_prompt = f"""{prompt}

Respond with a JSON object matching this JSON schema:
{json.dumps(schema)}"""
        try:
            return await self._complete(
                json_prompt,
                response_format={"type": "json_object"},
                **kwargs
            )
        except Exception as e:
            logger.error(f"OpenAI structured generation error: {e}")
            raise

    async def embed(self, text: str) -> List[float]:
        """Generate embeddings using OpenAI."""
        try:
            response = await self.client.embeddings.create(
                model=self.config.embedding_model or "text-embedding-3-small",
                input=text
            )
            return response.data[0].embedding
        except Exception as e:
            logger.error(f"OpenAI embedding error: {e}")
            raise


class AnthropicProvider(LLMProvider):
    """Anthropic provider implementation."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self.api_key = config.api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError("Anthropic API key not found")

        try:
            import anthropic
            self.client = anthropic.AsyncAnthropic(api_key=self.api_key)
        except ImportError:
            raise ImportError("Anthropic package not installed")

    async def generate(self, prompt: str, **kwargs) -> str:
        """Generate text using Anthropic."""
        try:
            response = await self.client.messages.create(
                model=self.config.model,
                max_tokens=kwargs.get("max_tokens", self.config.max_tokens),
                temperature=kwargs.get("temperature", self.config.temperature),
                messages=[{"role": "user", "content": prompt}]
            )
            return response.content[0].text
        except Exception as e:
            logger.error(f"Anthropic generation error: {e}")
            raise

    async def embed(self, text: str) -> List[float]:
        raise NotImplementedError("Anthropic does not provide an embeddings endpoint")


PROVIDER_CLASSES = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}

DEFAULT_MODELS = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
}


class LLMManager:
    """Manager for handling different LLM providers."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.providers: Dict[str, LLMProvider] = {}
        self._initialize_providers()

    @property
    def llm_config(self) -> Dict[str, Any]:
        return self.config.get("llm", {})

    def _initialize_providers(self):
        """Initialize every configured LLM provider."""
        llm_config = self.llm_config

        for name, provider_class in PROVIDER_CLASSES.items():
            if name not in llm_config:
                continue

            section = llm_config[name] or {}
            provider_config = LLMConfig(
                provider=name,
                model=section.get("model", DEFAULT_MODELS[name]),
                temperature=section.get("temperature", 0.7),
                max_tokens=section.get("max_tokens", 1024),
                api_key=section.get("api_key"),
                embedding_model=section.get("embedding_model")
            )
            try:
                self.providers[name] = provider_class(provider_config)
                logger.info(f"{name} provider initialized")
            except Exception as e:
                logger.warning(f"Failed to initialize {name} provider: {e}")

        if not self.providers:
            raise ValueError("No LLM providers could be initialized")

    def _get_provider(self, provider: Optional[str] = None) -> LLMProvider:
        provider_name = provider or self.llm_config.get("default_provider") or list(self.providers.keys())[0]

        if provider_name not in self.providers:
            raise ValueError(f"Provider {provider_name} not available")

        return self.providers[provider_name]

    @staticmethod
    async def _bounded(coro, timeout: Optional[float]):
        if timeout is None:
            return await coro
        return await asyncio.wait_for(coro, timeout=timeout)

    async def generate(
        self,
        prompt: str,
        provider: Optional[str] = None,
        timeout: Optional[float] = None,
        **kwargs
    ) -> str:
        """Generate text using specified or default provider."""
        llm = self._get_provider(provider)
        return await self._bounded(llm.generate(prompt, **kwargs), timeout)

    async def generate_structured(
        self,
        prompt: str,
        schema: Dict[str, Any],
        provider: Optional[str] = None,
        timeout: Optional[float] = None,
        required: Optional[List[str]] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Generate a JSON object matching ``schema``.

        Args:
            prompt: Prompt sent to the model
            schema: JSON schema of the expected object
            provider: Optional provider name, defaults to ``default_provider``
            timeout: Optional bound in seconds for the model call
            required: Keys the parsed object must carry, defaults to
                ``schema["required"]``. The full schema still goes to the model.

        Returns:
            The parsed JSON object

        Raises:
            StructuredOutputError: if the response cannot be parsed
            asyncio.TimeoutError: if the call exceeds ``timeout``
        """
        llm = self._get_provider(provider)
        text = await self._bounded(llm.generate_json(prompt, schema, **kwargs), timeout)
        return parse_json_response(text, schema, required=required)

    async def embed(
        self,
        text: str,
        provider: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> List[float]:
        """Generate embeddings using specified or default provider."""
        llm = self._get_provider(provider)
        return await self._bounded(llm.embed(text), timeout)

    def get_available_providers(self) -> List[str]:
        """Get list of available providers."""
        return list(self.providers.keys())
