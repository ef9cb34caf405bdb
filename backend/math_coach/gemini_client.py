from __future__ import annotations
import httpx
from typing import Any, Dict, Optional
from .settings import settings


class GeminiError(RuntimeError):
	"""Raised when the Gemini call (and the optional fallback) fails."""


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		timeout = settings.request_timeout_seconds
		self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._fallback_enabled = bool(settings.openrouter_api_key)
		self._openrouter_api_key = settings.openrouter_api_key
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=timeout, transport=transport)

	async def generate(
		self,
		prompt: str,
		*,
		temperature: Optional[float] = None,
		max_output_tokens: Optional[int] = None,
	) -> str:
		"""Send one text prompt and return the first candidate's text.

		Returns an empty string when the model produced no text. Raises
		GeminiError on transport errors, HTTP errors or an unexpected body.
		"""
		payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
		generation_config: Dict[str, Any] = {}
		if temperature is not None:
			generation_config["temperature"] = temperature
		if max_output_tokens is not None:
			generation_config["maxOutputTokens"] = int(max_output_tokens)
		if generation_config:
			payload["generationConfig"] = generation_config
		return await self._post_payload(
			payload,
			fallback_prompt=prompt,
			temperature=temperature,
			max_output_tokens=max_output_tokens,
		)

	async def _post_payload(
		self,
		payload: Dict[str, Any],
		*,
		fallback_prompt: Optional[str],
		temperature: Optional[float] = None,
		max_output_tokens: Optional[int] = None,
	) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		last_error: Optional[Exception] = None
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPError as err:
			last_error = err
		if last_error is None:
			try:
				data = r.json()
				candidate = data["candidates"][0]
				parts = (candidate.get("content") or {}).get("parts") or []
				return "".join(str(p.get("text", "")) for p in parts)
			except (ValueError, KeyError, IndexError, TypeError, AttributeError):
				last_error = GeminiError(f"Unexpected Gemini response: {r.text}")
		if not self._fallback_enabled or fallback_prompt is None:
			raise GeminiError(f"Gemini call failed: {last_error}") from last_error
		return await self._fallback_generate(
			fallback_prompt,
			last_error,
			temperature=temperature,
			max_output_tokens=max_output_tokens,
		)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(
		self,
		prompt: str,
		primary_error: Optional[Exception],
		*,
		temperature: Optional[float] = None,
		max_output_tokens: Optional[int] = None,
	) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise GeminiError("Fallback requested but OpenRouter is not configured") from primary_error
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		if temperature is not None:
			payload["temperature"] = temperature
		if max_output_tokens is not None:
			payload["max_tokens"] = int(max_output_tokens)
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"] or ""
		except Exception as fallback_err:
			raise GeminiError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from fallback_err


class UnconfiguredClient:
	"""Stand-in used when no API key is set; every call fails like a service error."""

	async def generate(self, prompt: str, **_: Any) -> str:
		raise GeminiError("GEMINI_API_KEY is not configured")

	async def aclose(self) -> None:
		return None
