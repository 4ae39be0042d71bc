from collections.abc import Sequence

from vidmod.features.video_moderation.domain.models import ClassificationResult, ModerationVerdict


def aggregate(results: Sequence[ClassificationResult]) -> ModerationVerdict:
    """One flagged frame anywhere in the clip rejects the whole video."""
    ordered = sorted(results, key=lambda r: r.timestamp_seconds)

    reasons: list[str] = []
    for result in ordered:
        if result.flagged:
            reasons.extend(result.reasons)

    return ModerationVerdict(
        approved=not any(r.flagged for r in ordered),
        reasons=reasons,
        frames_checked=len(ordered),
    )
