import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from vidmod.services.classification.rekognition_client import (
    ClassificationError,
    RekognitionClassifier,
)


class StubRekognition:
    def __init__(self, response=None, error=None):
        self.response = response or {"ModerationLabels": []}
        self.error = error
        self.calls = []

    def detect_moderation_labels(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.response


def _classifier(stub) -> RekognitionClassifier:
    return RekognitionClassifier("AKIATEST", "secret", "ap-southeast-2", client=stub)


@pytest.mark.asyncio
async def test_classify_maps_labels_and_sends_min_confidence():
    stub = StubRekognition(
        {
            "ModerationLabels": [
                {"Name": "Graphic Male Nudity", "ParentName": "Explicit Nudity", "Confidence": 97.1},
                {"Name": "Violence", "ParentName": "", "Confidence": 81.0},
            ]
        }
    )

    labels = await _classifier(stub).classify(b"jpeg", 80)

    assert stub.calls == [{"Image": {"Bytes": b"jpeg"}, "MinConfidence": 80}]
    assert [(l.name, l.parent_name, l.confidence) for l in labels] == [
        ("Graphic Male Nudity", "Explicit Nudity", 97.1),
        ("Violence", "", 81.0),
    ]


@pytest.mark.asyncio
async def test_classify_empty_response_returns_no_labels():
    assert await _classifier(StubRekognition({})).classify(b"jpeg", 80) == []


@pytest.mark.asyncio
async def test_client_error_becomes_classification_error():
    error = ClientError(
        {"Error": {"Code": "InvalidImageFormatException", "Message": "Bad image"}},
        "DetectModerationLabels",
    )

    with pytest.raises(ClassificationError) as exc:
        await _classifier(StubRekognition(error=error)).classify(b"jpeg", 80)

    assert exc.value.error_code == "InvalidImageFormatException"
    assert "Bad image" in str(exc.value)


@pytest.mark.asyncio
async def test_transport_error_becomes_classification_error():
    error = EndpointConnectionError(endpoint_url="https://rekognition.ap-southeast-2.amazonaws.com")

    with pytest.raises(ClassificationError):
        await _classifier(StubRekognition(error=error)).classify(b"jpeg", 80)
