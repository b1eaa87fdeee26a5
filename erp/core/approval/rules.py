"""Approval rules driven by the DNA configuration.

Maps a purchase-order amount to its threshold band (required approver role and
SLA) and exposes the DNA policy flags. Every function takes the configuration
explicitly; nothing here reads global state.
"""

from typing import Sequence, Union

from dna.config import ApprovalThreshold, DNAConfig
from dna.logger import get_logger
from dna.roles import Role, role_rank

logger = get_logger(__name__)


def resolve(amount: float, thresholds: Sequence[ApprovalThreshold]) -> ApprovalThreshold:
    """Return the threshold band that applies to ``amount``.

    Bands are scanned in ascending level order and the first one whose upper
    bound is unbounded or strictly greater than ``amount`` wins. An amount equal
    to a band's ``max_amount`` therefore belongs to the next band. When no band
    matches, the highest band is returned.

    Raises:
        ValueError: If ``amount`` is negative or ``thresholds`` is empty
    """
    if amount < 0:
        raise ValueError(f"Amount must not be negative, got {amount}")
    if not thresholds:
        raise ValueError("No approval thresholds configured")

    ordered = sorted(thresholds, key=lambda t: t.level)
    for threshold in ordered:
        if threshold.covers(amount):
            return threshold

    fallback = ordered[-1]
    logger.warning(
        "Amount %s exceeds every threshold band; falling back to level %d (%s)",
        amount, fallback.level, fallback.role.value,
    )
    return fallback


def required_role(amount: float, thresholds: Sequence[ApprovalThreshold]) -> Role:
    return resolve(amount, thresholds).role


def sla_hours(amount: float, thresholds: Sequence[ApprovalThreshold]) -> int:
    return resolve(amount, thresholds).sla_hours


def can_approve(
    actor_role: Union[str, Role, None],
    amount: float,
    thresholds: Sequence[ApprovalThreshold],
) -> bool:
    """Check if a user with ``actor_role`` may approve or reject ``amount``.

    Unrecognized actor roles rank as STAFF.
    """
    return role_rank(actor_role) >= required_role(amount, thresholds).rank


def get_required_threshold(amount: float, config: DNAConfig) -> ApprovalThreshold:
    return resolve(amount, config.approval_thresholds)


def get_sla_hours(amount: float, config: DNAConfig) -> int:
    return sla_hours(amount, config.approval_thresholds)


def is_self_approval_allowed(config: DNAConfig) -> bool:
    return config.settings.self_approval


def is_revision_allowed(config: DNAConfig) -> bool:
    return config.settings.allow_revision


def require_comment_on_reject(config: DNAConfig) -> bool:
    return config.settings.require_comment_on_reject


def can_modify_after_approval(config: DNAConfig) -> bool:
    return config.settings.modify_after_approval


def format_currency(amount: float) -> str:
    """Format an amount as Indonesian Rupiah without decimals, e.g. ``Rp 1.500.000``."""
    return "Rp " + f"{round(amount):,}".replace(",", ".")


def describe_threshold(threshold: ApprovalThreshold) -> str:
    """Human-readable amount range of a band, e.g. ``Rp 0 - < Rp 500.000``."""
    low = format_currency(threshold.min_amount)
    if threshold.max_amount is None:
        return f"{low} and above"
    return f"{low} - < {format_currency(threshold.max_amount)}"
