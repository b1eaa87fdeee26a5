"""DNA configuration: approval thresholds and workflow settings.

Handles loading and validation of the DNA rule document. The parsed
configuration is immutable and is passed explicitly to the rule functions in
``erp.core.approval``.
"""

import math
import os
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dna.document import DNADocumentError, parse_document
from dna.logger import get_logger
from dna.roles import Role, parse_role

logger = get_logger(__name__)

UNBOUNDED_MARKERS = {"", "unlimited", "none", "null", "~", "inf", "infinity"}
GROUPED_AMOUNT_RE = re.compile(r"^\d{1,3}(?:[.,_ ]\d{3})+$")

DEFAULT_STATUS_FLOW = ["DRAFT", "PENDING_APPROVAL", "APPROVED", "REJECTED"]


class DNAConfigError(ValueError):
    """Raised when a DNA document does not describe a usable configuration."""


@dataclass(frozen=True)
class ApprovalThreshold:
    """One amount band and the approver it requires."""

    level: int
    min_amount: float
    max_amount: Optional[float]
    role: Role
    sla_hours: int

    @property
    def is_unbounded(self) -> bool:
        return self.max_amount is None

    def covers(self, amount: float) -> bool:
        """True if ``amount`` is below this band's (exclusive) upper bound."""
        return self.max_amount is None or amount < self.max_amount


@dataclass(frozen=True)
class DNASettings:
    """Workflow policy flags."""

    self_approval: bool = False
    allow_revision: bool = True
    modify_after_approval: bool = False
    require_comment_on_reject: bool = True
    auto_escalate_on_sla_breach: bool = True


@dataclass(frozen=True)
class WorkflowConfig:
    name: str = "purchase-order-approval"
    status_flow: Tuple[str, ...] = tuple(DEFAULT_STATUS_FLOW)


@dataclass(frozen=True)
class DNAConfig:
    """Top-level DNA configuration."""

    approval_thresholds: Tuple[ApprovalThreshold, ...]
    settings: DNASettings = field(default_factory=DNASettings)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    version: str = "1.0"
    last_updated: Optional[str] = None
    source: Optional[str] = None


def _pick(data: Dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    """Read a key that may be written in snake_case or camelCase."""
    if snake in data:
        return data[snake]
    return data.get(camel, default)


def parse_amount(value: Any) -> Optional[float]:
    """Parse an amount; ``None``/``unlimited`` mean unbounded.

    Thousands separators (``500.000``, ``500,000``, ``500_000``) are accepted
    for string values, since editors tend to write them in tables.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise DNAConfigError(f"Invalid amount: {value!r}")
    if isinstance(value, (int, float)):
        if math.isinf(value):
            return None
        return float(value)

    text = str(value).strip().lower()
    if text in UNBOUNDED_MARKERS:
        return None
    text = text.replace("rp", "").strip()
    if GROUPED_AMOUNT_RE.match(text):
        text = re.sub(r"[.,_ ]", "", text)
    try:
        return float(text)
    except ValueError:
        raise DNAConfigError(f"Invalid amount: {value!r}") from None


def parse_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "yes", "on", "1"):
        return True
    if text in ("false", "no", "off", "0"):
        return False
    raise DNAConfigError(f"Invalid boolean: {value!r}")


def parse_threshold(threshold_dict: Dict[str, Any]) -> ApprovalThreshold:
    """Parse one approval threshold band.

    Args:
        threshold_dict: Band mapping from the DNA document

    Returns:
        ApprovalThreshold instance

    Raises:
        DNAConfigError: If a field is missing or malformed
    """
    if not isinstance(threshold_dict, dict):
        raise DNAConfigError(f"Threshold must be a mapping, got {type(threshold_dict).__name__}")

    raw_role = threshold_dict.get("role")
    role = parse_role(raw_role)
    if role is None:
        raise DNAConfigError(f"Unknown role in threshold: {raw_role!r}")

    try:
        level = int(threshold_dict["level"])
        sla_hours = int(_pick(threshold_dict, "sla_hours", "slaHours", 24))
    except KeyError:
        raise DNAConfigError("Threshold is missing 'level'") from None
    except (TypeError, ValueError) as e:
        raise DNAConfigError(f"Invalid threshold number: {e}") from None

    min_amount = parse_amount(_pick(threshold_dict, "min_amount", "minAmount", 0))
    return ApprovalThreshold(
        level=level,
        min_amount=min_amount if min_amount is not None else 0.0,
        max_amount=parse_amount(_pick(threshold_dict, "max_amount", "maxAmount")),
        role=role,
        sla_hours=sla_hours,
    )


def parse_settings(settings_dict: Dict[str, Any]) -> DNASettings:
    """Parse the workflow settings mapping; absent flags keep their defaults."""
    defaults = DNASettings()
    return DNASettings(
        self_approval=parse_bool(
            _pick(settings_dict, "self_approval", "selfApproval"), defaults.self_approval
        ),
        allow_revision=parse_bool(
            _pick(settings_dict, "allow_revision", "allowRevision"), defaults.allow_revision
        ),
        modify_after_approval=parse_bool(
            _pick(settings_dict, "modify_after_approval", "modifyAfterApproval"),
            defaults.modify_after_approval,
        ),
        require_comment_on_reject=parse_bool(
            _pick(settings_dict, "require_comment_on_reject", "requireCommentOnReject"),
            defaults.require_comment_on_reject,
        ),
        auto_escalate_on_sla_breach=parse_bool(
            _pick(settings_dict, "auto_escalate_on_sla_breach", "autoEscalateOnSlaBreach"),
            defaults.auto_escalate_on_sla_breach,
        ),
    )


def parse_workflow(workflow: Any) -> WorkflowConfig:
    if isinstance(workflow, str):
        return WorkflowConfig(name=workflow)
    if workflow is None:
        return WorkflowConfig()
    if not isinstance(workflow, dict):
        raise DNAConfigError(f"workflow must be a name or a mapping, got {type(workflow).__name__}")

    status_flow = _pick(workflow, "status_flow", "statusFlow", DEFAULT_STATUS_FLOW)
    if not isinstance(status_flow, list):
        raise DNAConfigError(f"workflow status_flow must be a list, got {type(status_flow).__name__}")
    return WorkflowConfig(
        name=str(workflow.get("name", WorkflowConfig.name)),
        status_flow=tuple(str(s) for s in status_flow),
    )


def parse_config(config_dict: Dict[str, Any], *, source: Optional[str] = None) -> DNAConfig:
    """Parse the full DNA mapping into a DNAConfig.

    Thresholds are sorted by level. Structural problems that the resolver can
    tolerate (gaps, missing unbounded band) are logged, not raised; see
    ``validate_thresholds``.

    Raises:
        DNAConfigError: If there are no thresholds or a band is malformed
    """
    raw_thresholds = _pick(config_dict, "approval_thresholds", "approvalThresholds", [])
    if not isinstance(raw_thresholds, list) or not raw_thresholds:
        raise DNAConfigError("DNA config must define at least one approval threshold")

    thresholds = tuple(
        sorted((parse_threshold(t) for t in raw_thresholds), key=lambda t: t.level)
    )
    for problem in validate_thresholds(thresholds):
        logger.warning("DNA threshold problem%s: %s", f" in {source}" if source else "", problem)

    settings = config_dict.get("settings")
    if settings is None:
        settings = {}
    elif not isinstance(settings, dict):
        raise DNAConfigError(f"settings must be a mapping, got {type(settings).__name__}")

    last_updated = _pick(config_dict, "last_updated", "lastUpdated")
    return DNAConfig(
        approval_thresholds=thresholds,
        settings=parse_settings(settings),
        workflow=parse_workflow(config_dict.get("workflow")),
        version=str(config_dict.get("version", "1.0")),
        last_updated=str(last_updated) if last_updated is not None else None,
        source=source,
    )


def validate_thresholds(thresholds: Tuple[ApprovalThreshold, ...]) -> List[str]:
    """List the ways a threshold sequence departs from a contiguous band layout.

    An empty result means the bands are ordered by level, contiguous, and
    closed by exactly one unbounded top band.
    """
    problems: List[str] = []
    if not thresholds:
        return ["no approval thresholds defined"]

    levels = [t.level for t in thresholds]
    if len(set(levels)) != len(levels):
        problems.append(f"duplicate levels: {levels}")
    if any(level < 1 for level in levels):
        problems.append("levels must be >= 1")

    unbounded = [t for t in thresholds if t.is_unbounded]
    if not unbounded:
        problems.append("no unbounded top band; amounts above the last band fall back to it")
    elif len(unbounded) > 1:
        problems.append(f"{len(unbounded)} unbounded bands; only the first one is reachable")
    elif unbounded[0] is not thresholds[-1]:
        problems.append(f"unbounded band at level {unbounded[0].level} is not the highest level")

    if thresholds[0].min_amount != 0:
        problems.append(f"first band starts at {thresholds[0].min_amount:g}, not 0")

    for band in thresholds:
        if band.sla_hours <= 0:
            problems.append(f"level {band.level}: sla_hours must be positive")
        if band.min_amount < 0:
            problems.append(f"level {band.level}: min_amount must not be negative")
        if band.max_amount is not None and band.max_amount <= band.min_amount:
            problems.append(f"level {band.level}: max_amount must exceed min_amount")

    for prev, band in zip(thresholds, thresholds[1:]):
        if prev.max_amount is None:
            continue
        if band.min_amount > prev.max_amount:
            problems.append(
                f"gap between level {prev.level} and {band.level}: "
                f"{prev.max_amount:g} to {band.min_amount:g}"
            )
        elif band.min_amount < prev.max_amount:
            problems.append(f"level {band.level} overlaps level {prev.level}")

    return problems


DEFAULT_DNA = DNAConfig(
    approval_thresholds=(
        ApprovalThreshold(1, 0.0, 500000.0, Role.MANAGER, 24),
        ApprovalThreshold(2, 500000.0, 5000000.0, Role.DIRECTOR, 48),
        ApprovalThreshold(3, 5000000.0, None, Role.CEO, 72),
    ),
    settings=DNASettings(),
    version="1.2",
    last_updated="2026-01-26",
    source="builtin",
)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def loads_config(text: str, *, markdown: bool = True, source: Optional[str] = None) -> DNAConfig:
    """Parse DNA text (markdown or plain YAML) into a DNAConfig.

    Raises:
        DNAConfigError: If the text is not valid DNA
    """
    try:
        data = parse_document(text, markdown=markdown)
    except DNADocumentError as e:
        raise DNAConfigError(str(e)) from e
    return parse_config(_expand_env_vars(data), source=source)


def load_config(config_path: str) -> DNAConfig:
    """Load the DNA configuration from a markdown or YAML file.

    Args:
        config_path: Path to ``.md``, ``.yaml`` or ``.yml`` file

    Returns:
        DNAConfig instance

    Raises:
        FileNotFoundError: If the file doesn't exist
        DNAConfigError: If the file is not valid DNA
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"DNA file not found: {config_path}")

    text = config_file.read_text(encoding="utf-8")
    markdown = config_file.suffix.lower() not in (".yaml", ".yml")
    return loads_config(text, markdown=markdown, source=str(config_file))


class DNAConfigCache:
    """Keeps the parsed DNA for a path and reloads it when the file changes.

    A missing file yields ``DEFAULT_DNA``. If a changed file fails to parse,
    the last good configuration stays in effect.
    """

    def __init__(self, path: Optional[str], default: DNAConfig = DEFAULT_DNA):
        self.path = path
        self.default = default
        self._config: Optional[DNAConfig] = None
        self._mtime: Optional[float] = None
        self._lock = threading.Lock()

    def get(self) -> DNAConfig:
        with self._lock:
            mtime = self._current_mtime()
            if mtime is None:
                if self._config is None or self._mtime is not None:
                    if self.path:
                        logger.warning("DNA file %s not found, using built-in defaults", self.path)
                    self._config, self._mtime = self.default, None
                return self._config

            if self._config is None or mtime != self._mtime:
                self._reload(mtime)
            return self._config

    def invalidate(self) -> None:
        with self._lock:
            self._config = None
            self._mtime = None

    def _current_mtime(self) -> Optional[float]:
        if not self.path:
            return None
        try:
            return os.stat(self.path).st_mtime
        except FileNotFoundError:
            return None

    def _reload(self, mtime: float) -> None:
        try:
            config = load_config(self.path)
        except DNAConfigError as e:
            if self._config is None:
                raise
            logger.error("Failed to reload DNA from %s, keeping version %s: %s",
                         self.path, self._config.version, e)
            self._mtime = mtime
            return
        logger.info("Loaded DNA version %s from %s", config.version, self.path)
        self._config, self._mtime = config, mtime
