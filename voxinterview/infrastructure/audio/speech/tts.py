"""
Text-to-speech synthesis using Google Cloud TTS.
"""
import logging

from ....config import GOOGLE_TTS_SAMPLE_RATE, LANGUAGE_CODE

logger = logging.getLogger("speech_tts")

# Client is created on first use and reused across questions
_client = None


def _get_client():
    global _client
    if _client is None:
        from google.cloud import texttospeech
        _client = texttospeech.TextToSpeechClient()
    return _client


def synthesize_linear16(text: str,
                        voice: str,
                        sample_rate: int = GOOGLE_TTS_SAMPLE_RATE,
                        language_code: str = LANGUAGE_CODE) -> bytes:
    """
    Synthesize speech with Google Cloud Text-to-Speech.

    Returns raw PCM16 mono samples at ``sample_rate`` (the WAV header the
    service prepends to LINEAR16 output is stripped).

    Raises:
        ValueError: If text is empty
        RuntimeError: If the service call fails
    """
    if not text.strip():
        raise ValueError("Cannot synthesize empty text")

    from google.cloud import texttospeech

    synthesis_input = texttospeech.SynthesisInput(text=text)
    voice_params = texttospeech.VoiceSelectionParams(
        language_code=language_code,
        name=voice
    )
    audio_config = texttospeech.AudioConfig(
        audio_encoding=texttospeech.AudioEncoding.LINEAR16,
        sample_rate_hertz=sample_rate
    )

    try:
        response = _get_client().synthesize_speech(
            input=synthesis_input, voice=voice_params, audio_config=audio_config
        )
    except Exception as e:
        logger.error(f"Google TTS failed: {e}")
        raise RuntimeError(f"Google TTS failed: {e}") from e

    audio = response.audio_content
    if audio[:4] == b"RIFF":
        data_at = audio.find(b"data")
        if data_at != -1:
            audio = audio[data_at + 8:]
    logger.debug(f"Synthesized {len(audio)} bytes with voice {voice}")
    return audio
