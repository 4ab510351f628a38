"""OpenAI helper shared by quote drafting and transcription"""
import logging
from typing import List, Optional

from django.conf import settings
from openai import OpenAI

from .exceptions import AIServiceUnavailable

logger = logging.getLogger(__name__)


class LLMClient:
    """Wraps OpenAI chat completions and Whisper transcription"""

    def __init__(self, api_key: Optional[str] = None) -> None:
        api_key = api_key or settings.OPENAI_API_KEY
        if not api_key:
            raise AIServiceUnavailable('AI service not configured')
        self._client = OpenAI(api_key=api_key)

    def run_chat(self, messages: List[dict], *, model: str, temperature: float = 0.7,
                 max_tokens: Optional[int] = None, response_format: Optional[dict] = None) -> str:
        """Execute a chat completion and return the text content."""
        options = {}
        if max_tokens:
            options['max_tokens'] = max_tokens
        if response_format:
            options['response_format'] = response_format
        completion = self._client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            **options,
        )
        logger.debug(f"Chat completion with {model} used {getattr(completion.usage, 'total_tokens', '?')} tokens")
        return completion.choices[0].message.content or ""

    def transcribe(self, filename: str, content: bytes) -> dict:
        """Run Whisper on an audio file and return text, language, duration and segments"""
        result = self._client.audio.transcriptions.create(
            model=settings.OPENAI_TRANSCRIPTION_MODEL,
            file=(filename, content),
            response_format='verbose_json',
        )
        segments = [
            {'start': segment.start, 'end': segment.end, 'text': segment.text}
            for segment in (getattr(result, 'segments', None) or [])
        ]
        return {
            'text': result.text,
            'language': getattr(result, 'language', None),
            'duration': getattr(result, 'duration', None),
            'segments': segments,
        }


def strip_code_fences(content):
    """Remove ```json fences that models wrap around JSON replies"""
    text = (content or '').strip()
    if text.startswith('```'):
        text = text.split('\n', 1)[1] if '\n' in text else ''
        if text.rstrip().endswith('```'):
            text = text.rstrip()[:-3]
    return text.strip()
