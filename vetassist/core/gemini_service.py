"""Gemini service for extracting patient data from free text"""
import json
import logging
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Any, Optional
import google.generativeai as genai
from google.generativeai.types import HarmBlockThreshold, HarmCategory

from vetassist.core.config import Config
from vetassist.services.normalizer import normalize_patient_payload
from vetassist.types.extraction import ExtractedPatientData

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")


class ExtractionError(Exception):
    """Model call or response parsing failed; the message is user facing"""


class GeminiService:
    """Service for interacting with Gemini API"""

    def __init__(self, api_key: str = None, model: str = None, generative_model=None):
        """Initialize Gemini service

        ``generative_model`` replaces the Gemini client, e.g. with a stub that
        only implements ``generate_content``.
        """
        self.prompt_template = Config.get_extraction_prompt_template()
        if not self.prompt_template:
            raise ValueError(
                f"Extraction prompt template not found in {Config.PROMPTS_CONFIG_PATH}"
            )

        self.model_name = model or Config.GEMINI_MODEL
        if generative_model is not None:
            self.model = generative_model
            return

        api_key = api_key or Config.GEMINI_API_KEY
        if not api_key:
            raise ValueError("Gemini API key is required")

        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(
            self.model_name,
            generation_config=self._get_generation_config(),
            safety_settings=self._get_safety_settings(),
        )

    def _get_generation_config(self) -> genai.types.GenerationConfig:
        """Low randomness and bounded output length"""
        return genai.types.GenerationConfig(
            temperature=Config.get("gemini", "generation", "temperature", default=0.1),
            top_p=Config.get("gemini", "generation", "top_p", default=0.95),
            top_k=Config.get("gemini", "generation", "top_k", default=40),
            max_output_tokens=Config.get("gemini", "generation", "max_output_tokens", default=2048),
        )

    def _get_safety_settings(self) -> Dict[Any, Any]:
        threshold = Config.get("gemini", "safety_threshold", default="BLOCK_MEDIUM_AND_ABOVE")
        return {
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold[threshold],
        }

    def build_prompt(self, message: str, now: Optional[datetime] = None) -> str:
        """Embed the current date, time and verbatim user text in the template"""
        now = now or datetime.now()
        return self.prompt_template.format(
            current_date=now.strftime("%Y-%m-%d"),
            current_time=now.strftime("%H:%M:%S"),
            tomorrow_date=(now + timedelta(days=1)).strftime("%Y-%m-%d"),
            message=message,
        )

    def extract_patient_data(self, message: str, now: Optional[datetime] = None) -> ExtractedPatientData:
        """
        Extract a patient draft from a free-text instruction

        Args:
            message: Text typed by the user
            now: Reference time for relative dates (defaults to the current time)

        Returns:
            ExtractedPatientData ready for review

        Raises:
            ExtractionError: when the model call fails or its answer is not JSON
        """
        now = now or datetime.now()
        prompt = self.build_prompt(message, now)

        try:
            response = self.model.generate_content(prompt)
            response_text = response.text
        except Exception as e:
            logger.error("Error calling %s: %s", self.model_name, e)
            raise ExtractionError("Error al comunicarse con el asistente.") from e

        try:
            payload = self._parse_json_response(response_text)
        except json.JSONDecodeError as e:
            logger.error("Error parsing JSON response: %s. Received text: %s", e, response_text)
            self._save_debug_response(response_text, message, str(e))
            raise ExtractionError("Error al analizar la respuesta JSON.") from e

        if not isinstance(payload, dict):
            self._save_debug_response(response_text, message, "response is not a JSON object")
            raise ExtractionError("Error al analizar la respuesta JSON.")

        return normalize_patient_payload(payload, now)

    def _parse_json_response(self, response_text: str) -> Any:
        """Prefer a fenced ```json block, otherwise parse the whole body"""
        json_match = _FENCED_JSON.search(response_text or "")
        if json_match:
            return json.loads(json_match.group(1))
        return json.loads(response_text)

    def _save_debug_response(self, response_text: str, message: str, error: str):
        """Save raw response for debugging"""
        debug_subdir = Config.get("directories", "debug", default="debug")
        debug_dir = Path(Config.LOG_DIR) / debug_subdir
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        debug_suffix = Config.get("files", "debug_suffix", default="_error.json")
        debug_file = debug_dir / f"{timestamp}_extraction{debug_suffix}"

        debug_data = {
            "error": error,
            "message": message,
            "timestamp": datetime.now().isoformat(),
            "raw_response": (response_text or "")[:Config.get("limits", "debug_response_size", default=5000)]
        }

        try:
            debug_dir.mkdir(parents=True, exist_ok=True)
            json_indent = Config.get("defaults", "json_indent", default=2)
            with open(debug_file, "w", encoding="utf-8") as f:
                json.dump(debug_data, f, indent=json_indent, ensure_ascii=False)
        except OSError as e:
            logger.warning("Could not save debug response to %s: %s", debug_file, e)
