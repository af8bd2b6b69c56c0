"""Chat-completions client used for roadmap, lesson and quiz generation."""
import os
from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv

# Load .env so GROQ_API_KEY is available
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)


class LLMClient:
    """Client for an OpenAI-compatible chat-completions API (Groq by default)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 60.0,
    ):
        self.api_key = api_key or os.getenv("GROQ_API_KEY")
        if not self.api_key:
            raise ValueError("GROQ_API_KEY environment variable not set")

        self.base_url = (base_url or os.getenv("LLM_BASE_URL", "https://api.groq.com/openai/v1")).rstrip("/")
        self.model = model or os.getenv("LLM_MODEL", "llama-3.3-70b-versatile")
        self.timeout = timeout

    async def complete(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> str:
        """
        Send a single user prompt and return the response text.

        Args:
            prompt: Full prompt text
            temperature: Sampling temperature
            max_tokens: Upper bound on generated tokens
            json_mode: Ask the provider for a JSON object response

        Raises:
            httpx.HTTPError: On network failures and non-2xx responses
            KeyError: If the response body is not a chat completion
        """
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=body,
            )
            response.raise_for_status()
            result = response.json()
            text = result["choices"][0]["message"]["content"].strip()
            print(f"[LLM] {self.model} returned {len(text)} chars: {text[:200]}...")
            return text


# Singleton instance
_llm_client: Optional[LLMClient] = None


def get_llm_client() -> Optional[LLMClient]:
    """Get or create the LLM client singleton.

    Returns None when no API key is configured so callers can fall back to
    placeholder content.
    """
    global _llm_client
    if _llm_client is None:
        try:
            _llm_client = LLMClient()
        except ValueError as e:
            print(f"[LLM] Client unavailable: {e}")
            return None
    return _llm_client
