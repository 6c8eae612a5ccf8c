import json

import pytest
import requests

from core.transport import RetryingTransport, RetryPolicy


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Stands in for requests.Session; replays queued responses or exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if not self.responses:
            raise AssertionError("FakeSession ran out of queued responses")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def chat_response(content, prompt_tokens=120, completion_tokens=480):
    return FakeResponse(200, {
        "id": "cmpl-1",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens},
    })


def gemini_response(text, prompt_tokens=258, output_tokens=64):
    return FakeResponse(200, {
        "candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}],
        "usageMetadata": {"promptTokenCount": prompt_tokens, "candidatesTokenCount": output_tokens},
    })


VISION_TEXT = """HERB NAME: Tulsi
SCIENTIFIC NAME: Ocimum tenuiflorum
SANSKRIT NAME: Tulasi
CONFIDENCE: 92
DESCRIPTION: Fresh green leaves with purple stems
AYURVEDIC PROPERTIES: Rasa: Katu, Tikta; Virya: Ushna"""

REMEDY_TEXT = """**Primary Preparation Method:** Boil 8 fresh tulsi leaves in two cups of water until reduced by half to make a decoction.

**Dosage & Administration:** Take 50 ml twice daily after meals for 14 days.

**Dietary Recommendations:** Include warm soups, ginger tea and light khichdi. Skip cold drinks, curd and fried food.

**Precautions & Contraindications:** Not advised during pregnancy or with blood thinners.

**Expected Results:** Improvement within 5-7 days."""


class SleepRecorder:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def transport(session, sleeps):
    return RetryingTransport(policy=RetryPolicy(max_attempts=3), session=session, sleep=sleeps)


@pytest.fixture
def herb_image(tmp_path):
    path = tmp_path / "upload.jpg"
    path.write_bytes(b"\xff\xd8\xff\xe0fake-jpeg-bytes")
    return path


@pytest.fixture
def connection_error():
    return requests.exceptions.ConnectionError("Name or service not known")
