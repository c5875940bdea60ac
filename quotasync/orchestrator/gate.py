"""Decision gate - one go/no-go for the whole batch."""
from typing import Optional

from ..models import BatchDecision, QuotaSnapshot


def decide(total_required_bytes: Optional[int], quota: Optional[QuotaSnapshot]) -> BatchDecision:
    """
    Authorize or veto a batch.

    There is no per-mapping check: the batch either fits as a whole or
    nothing is transferred, so one large mapping cannot leave the others
    with a half-filled remote.
    """
    if quota is None:
        return BatchDecision.QUOTA_UNAVAILABLE
    if total_required_bytes is None:
        return BatchDecision.ESTIMATION_UNAVAILABLE
    if total_required_bytes > quota.available_bytes:
        return BatchDecision.INSUFFICIENT_SPACE
    return BatchDecision.AUTHORIZED
