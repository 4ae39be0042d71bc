from vidmod.features.video_moderation.domain.models import ClassificationResult
from vidmod.features.video_moderation.pipeline.verdict import aggregate


def test_all_clean_frames_approve():
    verdict = aggregate([ClassificationResult(ts) for ts in (0, 5, 10)])

    assert verdict.approved is True
    assert verdict.reasons == []
    assert verdict.frames_checked == 3


def test_single_flagged_frame_rejects_and_reasons_follow_time_order():
    results = [
        ClassificationResult(20, flagged=True, reasons=["Violence at 20s (85.00% confidence)"]),
        ClassificationResult(0),
        ClassificationResult(
            5,
            flagged=True,
            reasons=[
                "Explicit Nudity at 5s (99.00% confidence)",
                "Graphic Gore at 5s (90.00% confidence)",
            ],
        ),
    ]

    verdict = aggregate(results)

    assert verdict.approved is False
    assert verdict.frames_checked == 3
    assert verdict.reasons == [
        "Explicit Nudity at 5s (99.00% confidence)",
        "Graphic Gore at 5s (90.00% confidence)",
        "Violence at 20s (85.00% confidence)",
    ]


def test_no_frames_is_vacuously_approved():
    verdict = aggregate([])

    assert verdict.approved is True
    assert verdict.frames_checked == 0
