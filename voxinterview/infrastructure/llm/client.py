"""
Vertex AI REST client for Gemini interactions (text, structured JSON, speech).
"""
import json
import logging
from typing import Optional, Dict, Any, List, Union

import requests
import google.auth
import google.auth.transport.requests
from google.oauth2 import service_account

from ...config import VERTEX_LOCATION, QUESTION_MODEL, LLM_TIMEOUT, MAX_OUTPUT_TOKENS

logger = logging.getLogger("llm_client")

Parts = Union[str, List[Dict[str, Any]]]


class VertexRestClient:
    """REST-based client for Vertex AI Gemini models."""

    def __init__(self,
                 project: str,
                 location: str = VERTEX_LOCATION,
                 model: str = QUESTION_MODEL,
                 credentials_json: Optional[str] = None,
                 timeout: int = LLM_TIMEOUT):
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.base_url = f"https://{self.location}-aiplatform.googleapis.com/v1"
        self._creds = None
        self._token = None
        self.timeout = timeout

    def _model_resource(self, model: Optional[str] = None) -> str:
        return f"projects/{self.project}/locations/{self.location}/publishers/google/models/{model or self.model}"

    def _refresh_token(self):
        """Refresh the OAuth token for API calls."""
        if self._creds is None:
            if self.credentials_json:
                self._creds = service_account.Credentials.from_service_account_file(
                    self.credentials_json,
                    scopes=["https://www.googleapis.com/auth/cloud-platform"],
                )
            else:
                self._creds, _ = google.auth.default(scopes=["https://www.googleapis.com/auth/cloud-platform"])

        auth_req = google.auth.transport.requests.Request()
        self._creds.refresh(auth_req)
        self._token = self._creds.token

    def _ensure_token(self):
        """Ensure we have a valid token, refreshing if needed."""
        if not self._token or (self._creds is not None and self._creds.expired):
            self._refresh_token()

    def generate_content(
        self,
        parts: Parts,
        model: Optional[str] = None,
        temperature: float = 0.0,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
        response_schema: Optional[Dict[str, Any]] = None,
        response_modalities: Optional[List[str]] = None,
        speech_voice: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Call generateContent and return the raw response JSON."""
        self._ensure_token()
        url = f"{self.base_url}/{self._model_resource(model)}:generateContent"

        if isinstance(parts, str):
            parts = [{"text": parts}]

        generation_config: Dict[str, Any] = {
            "temperature": float(temperature),
            "maxOutputTokens": int(max_output_tokens),
        }
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = response_schema
        if response_modalities:
            generation_config["responseModalities"] = list(response_modalities)
        if speech_voice:
            generation_config["speechConfig"] = {
                "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": speech_voice}}
            }

        body: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
        }

        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

        resp = requests.post(url, headers=headers, json=body, timeout=self.timeout)
        if resp.status_code >= 400:
            raise RuntimeError(f"Vertex REST error {resp.status_code}: {resp.text}")

        return resp.json()

    def _parse_response_text(self, resp_json: Dict[str, Any]) -> str:
        """
        Parse response JSON to extract text content.
        Tries Vertex schema first, then falls back to alternatives.
        """
        cands = resp_json.get("candidates") or []
        if cands:
            content = cands[0].get("content") or {}
            for p in content.get("parts") or []:
                if isinstance(p, dict) and isinstance(p.get("text"), str):
                    return p["text"]
            if isinstance(content.get("text"), str):
                return content["text"]

        if isinstance(resp_json.get("text"), str):
            return resp_json["text"]

        # Last resort: return JSON for inspection
        return json.dumps(resp_json, separators=(",", ":"))

    def _parse_inline_audio(self, resp_json: Dict[str, Any]) -> Optional[str]:
        """Extract base64 audio from candidates[0].content.parts[*].inlineData.data."""
        cands = resp_json.get("candidates") or []
        if not cands:
            return None
        for p in (cands[0].get("content") or {}).get("parts") or []:
            inline = p.get("inlineData") if isinstance(p, dict) else None
            if inline and isinstance(inline.get("data"), str):
                return inline["data"]
        return None

    def generate_json(self,
                      parts: Parts,
                      response_schema: Optional[Dict[str, Any]] = None,
                      model: Optional[str] = None,
                      temperature: float = 0.0) -> Dict[str, Any]:
        """
        Generate a JSON object, tolerating prose around it.
        Automatically appends instruction to respond with JSON only.
        """
        if isinstance(parts, str):
            parts = [{"text": parts.strip() + "\n\nRespond ONLY with minified JSON."}]
        logger.debug("Sending JSON prompt to LLM...")

        try:
            resp_json = self.generate_content(parts, model=model, temperature=temperature,
                                              response_schema=response_schema)
        except Exception as e:
            logger.error("LLM request failed: %s", e)
            raise

        text = self._parse_response_text(resp_json)
        logger.debug("Raw LLM output: %s", repr(text[:2000]))
        return extract_json_object(text)

    def generate_speech(self, text: str, voice_name: str, model: Optional[str] = None) -> str:
        """Generate speech audio. Returns base64 PCM16 mono."""
        resp_json = self.generate_content(
            text, model=model, temperature=1.0,
            response_modalities=["AUDIO"], speech_voice=voice_name,
        )
        audio = self._parse_inline_audio(resp_json)
        if not audio:
            raise RuntimeError("No audio data returned from Gemini TTS")
        return audio


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse a JSON object from LLM text, falling back to the outermost {...} substring."""
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError as e:
        logger.warning("json.loads failed: %s", e)

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            parsed = json.loads(text[start:end + 1])
            if isinstance(parsed, dict):
                logger.debug("Parsed JSON from substring successfully")
                return parsed
        except json.JSONDecodeError as e2:
            logger.warning("Substring parse also failed: %s", e2)

    raise ValueError(f"LLM did not return valid JSON: {text[:500]}")
