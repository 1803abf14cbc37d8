"""
Client for the hosted text-generation service.

The service runs jobs asynchronously: a prediction is created, then polled
until it reaches a terminal state. The whole create+poll sequence is retried
through the shared ``RetryPolicy`` when the failure is transient.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from app.features.content.services.prompts import with_json_mode
from app.platform.config import Settings, settings as default_settings
from app.platform.error_handler import log_error
from app.platform.errors import (
    AnalysisError,
    ConfigurationError,
    RemoteJobCanceled,
    RemoteJobFailed,
    RemoteJobTimeout,
    RemoteServiceError,
)
from app.platform.logger import StructuredLogger, get_structured_logger
from app.platform.retry import RetryPolicy
from app.platform.utils.http import request_with_timeout


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    system_prompt: Optional[str] = None
    max_tokens: int = 4000
    verbosity: str = "medium"
    reasoning_effort: str = "medium"
    json_mode: bool = False

    def to_input(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "prompt": with_json_mode(self.prompt) if self.json_mode else self.prompt,
            "max_completion_tokens": self.max_tokens,
            "verbosity": self.verbosity,
            "reasoning_effort": self.reasoning_effort,
        }
        if self.system_prompt:
            payload["system_prompt"] = self.system_prompt
        return payload


def _join(items: list) -> str:
    return "".join(item if isinstance(item, str) else str(item) for item in items)


def normalize_output(output: Any) -> str:
    """Collapse the job output (token list, string or object) into one string."""
    if output is None:
        return ""
    if isinstance(output, list):
        return _join(output)
    if isinstance(output, str):
        return output
    if isinstance(output, dict):
        for key in ("text", "content"):
            if output.get(key):
                return str(output[key])
        nested = output.get("output")
        if nested:
            if isinstance(nested, list):
                return _join(nested)
            return nested if isinstance(nested, str) else json.dumps(nested)
        return json.dumps(output)
    return str(output)


class TextGenerationClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
        logger: Optional[StructuredLogger] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.settings = settings or default_settings
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=self.settings.LLM_MAX_RETRIES,
            base_delay=self.settings.LLM_RETRY_BASE_DELAY,
            max_delay=self.settings.LLM_RETRY_MAX_DELAY,
        )
        self.logger = logger or get_structured_logger(__name__)
        self.sleep = sleep

    @property
    def base_url(self) -> str:
        return self.settings.REPLICATE_API_URL.rstrip("/")

    @staticmethod
    def _headers(token: str) -> Dict[str, str]:
        return {"Authorization": f"Token {token}", "Content-Type": "application/json"}

    async def generate(self, request: GenerationRequest) -> str:
        """
        Run one text-generation job and return its output as a single string.

        Raises:
            ConfigurationError: credential missing or model version unresolvable.
            RemoteJobTimeout / RemoteJobFailed / RemoteJobCanceled: the job did not succeed.
            RemoteServiceError: the service answered with a non-success status.
        """
        token = self.settings.REPLICATE_API_TOKEN
        if not token:
            error = ConfigurationError("Text generation service authentication not configured")
            log_error(error, "text_generation.config", self.logger, has_token=False)
            raise error

        if self.client is not None:
            return await self._generate(self.client, token, request)
        async with httpx.AsyncClient() as client:
            return await self._generate(client, token, request)

    async def _generate(self, client: httpx.AsyncClient, token: str, request: GenerationRequest) -> str:
        try:
            return await self.retry_policy.run(
                lambda: self._run_prediction(client, token, request),
                logger=self.logger,
                context="text_generation.retry",
            )
        except Exception as e:
            log_error(
                e,
                "text_generation.failed",
                self.logger,
                model=self.settings.REPLICATE_MODEL,
                max_retries=self.retry_policy.max_retries,
            )
            raise

    async def _run_prediction(self, client: httpx.AsyncClient, token: str, request: GenerationRequest) -> str:
        version = await self.resolve_version(client, token)
        prediction_id = await self._create_prediction(client, token, version, request)
        output = await self._poll_prediction(client, token, prediction_id)
        text = normalize_output(output)
        self.logger.info("text_generation.done", prediction_id=prediction_id, output_length=len(text))
        return text

    async def _lookup(self, client: httpx.AsyncClient, token: str, path: str, context: str) -> Optional[Dict[str, Any]]:
        try:
            response = await request_with_timeout(
                client,
                "GET",
                f"{self.base_url}{path}",
                self.settings.LLM_MODEL_LOOKUP_TIMEOUT,
                headers=self._headers(token),
            )
        except (httpx.HTTPError, AnalysisError) as e:
            log_error(e, context, self.logger)
            return None

        if not response.is_success:
            self.logger.warning(context, status_code=response.status_code, body=response.text[:200])
            return None
        try:
            data = response.json()
        except ValueError as e:
            log_error(e, context, self.logger)
            return None
        return data if isinstance(data, dict) else None

    async def resolve_version(self, client: httpx.AsyncClient, token: str) -> str:
        """Latest version id of the configured model, from the model endpoint or its versions list."""
        model = self.settings.REPLICATE_MODEL

        info = await self._lookup(client, token, f"/models/{model}", "text_generation.model_lookup")
        if info:
            latest = info.get("latest_version")
            if isinstance(latest, dict) and latest.get("id"):
                return latest["id"]
            if info.get("default_version"):
                return info["default_version"]

        versions = await self._lookup(client, token, f"/models/{model}/versions", "text_generation.versions_lookup")
        if versions:
            results = versions.get("results")
            if isinstance(results, list) and results and isinstance(results[0], dict) and results[0].get("id"):
                return results[0]["id"]

        error = ConfigurationError("Failed to resolve model version. Service configuration error.")
        log_error(error, "text_generation.model_version", self.logger, model=model)
        raise error

    async def _create_prediction(
        self,
        client: httpx.AsyncClient,
        token: str,
        version: str,
        request: GenerationRequest,
    ) -> str:
        response = await request_with_timeout(
            client,
            "POST",
            f"{self.base_url}/predictions",
            self.settings.LLM_CREATE_TIMEOUT,
            headers=self._headers(token),
            json={"version": version, "input": request.to_input()},
        )
        if not response.is_success:
            raise RemoteServiceError(
                f"Failed to create prediction: {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )

        prediction_id = response.json().get("id")
        if not prediction_id:
            raise RemoteJobFailed("Failed to get prediction ID from service")
        self.logger.info("text_generation.created", prediction_id=prediction_id, prompt_length=len(request.prompt))
        return prediction_id

    async def _poll_prediction(self, client: httpx.AsyncClient, token: str, prediction_id: str) -> Any:
        interval = self.settings.LLM_POLL_INTERVAL
        max_polls = self.settings.LLM_MAX_POLLS

        for _ in range(max_polls):
            await self.sleep(interval)
            response = await request_with_timeout(
                client,
                "GET",
                f"{self.base_url}/predictions/{prediction_id}",
                self.settings.LLM_STATUS_TIMEOUT,
                headers=self._headers(token),
            )
            if not response.is_success:
                raise RemoteServiceError(
                    f"Failed to check prediction status: {response.status_code} {response.reason_phrase}",
                    status_code=response.status_code,
                )

            data = response.json()
            status = data.get("status")
            if status == "succeeded":
                return data.get("output")
            if status == "failed":
                raise RemoteJobFailed(f"Prediction failed: {data.get('error') or 'Unknown error'}")
            if status == "canceled":
                raise RemoteJobCanceled("Prediction was canceled")

        raise RemoteJobTimeout(f"Prediction timed out after {max_polls * interval:g} seconds")
