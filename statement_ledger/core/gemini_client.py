"""
Google Gemini client
Single entry point for every model call made by the pipeline
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from google import genai
from google.genai import types
from google.oauth2 import service_account

from ..models.transaction import DocumentPage
from .retry import RetryOrchestrator

logger = logging.getLogger(__name__)

_CLOUD_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


@dataclass
class GeminiConfig:
    """Configuration for the Gemini API (AI Studio key or Vertex AI project)"""
    api_key: Optional[str] = None
    model: str = "gemini-2.5-flash"
    project_id: Optional[str] = None
    location: str = "us-central1"
    credentials_path: Optional[str] = None
    use_vertex: bool = False


class GeminiClient:
    """
    Gemini client for document extraction

    Features:
    - Async generation with JSON response schemas
    - Page payloads (PDF/images) sent inline
    - Retry/backoff through RetryOrchestrator
    """

    def __init__(self, config: GeminiConfig, retry: Optional[RetryOrchestrator] = None):
        self.config = config
        self.retry = retry or RetryOrchestrator()

        if config.use_vertex:
            if not config.project_id:
                raise ValueError("GeminiConfig requires project_id when use_vertex is set")

            credentials = None
            if config.credentials_path:
                credentials_path = Path(config.credentials_path).expanduser()
                if not credentials_path.is_file():
                    raise FileNotFoundError(f"Gemini credentials not found: {credentials_path}")
                credentials = service_account.Credentials.from_service_account_file(
                    str(credentials_path),
                    scopes=_CLOUD_SCOPES
                )

            self.client = genai.Client(
                vertexai=True,
                project=config.project_id,
                location=config.location,
                credentials=credentials
            )
            logger.info(f"Initialized Gemini client (Vertex AI): {config.project_id}/{config.location}")
        else:
            if not config.api_key:
                raise ValueError("GeminiConfig requires api_key (or use_vertex with project_id)")
            self.client = genai.Client(api_key=config.api_key)
            logger.info(f"Initialized Gemini client: {config.model}")

    async def generate(self,
                       prompt: str,
                       pages: Sequence[DocumentPage] = (),
                       schema: Optional[types.Schema] = None,
                       *,
                       model: Optional[str] = None,
                       max_output_tokens: Optional[int] = None,
                       thinking_budget: Optional[int] = None,
                       label: str = "Gemini call") -> str:
        """
        Send page payloads plus an instruction and return the raw response text

        The text may be fenced or truncated; callers route it through
        parse_json_response().
        """
        contents = [
            types.Part.from_bytes(data=page.content, mime_type=page.mime_type)
            for page in pages
        ]
        contents.append(types.Part.from_text(text=prompt))

        generation_config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
            max_output_tokens=max_output_tokens,
            thinking_config=(
                types.ThinkingConfig(thinking_budget=thinking_budget)
                if thinking_budget is not None else None
            ),
        )
        model_name = model or self.config.model

        logger.debug(f"{label}: model={model_name}, pages={len(pages)}, prompt={len(prompt)} chars")
        response = await self.retry.run(
            lambda: self.client.aio.models.generate_content(
                model=model_name,
                contents=contents,
                config=generation_config
            ),
            label=label
        )
        return response.text or ""
