"""
Configuration validation for production safety.

- Range checks for numeric parameters
- Address format checks (executor, allow-list)
- Warnings for risky but legal configurations
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional, Tuple

from eth_utils import is_address

logger = logging.getLogger(__name__)


class ValidationSeverity(Enum):
    """Severity levels for validation issues."""
    ERROR = auto()    # Blocks startup
    WARNING = auto()  # Logs warning but allows startup
    INFO = auto()     # Informational only


@dataclass
class ValidationIssue:
    """A single validation issue."""
    field: str
    message: str
    severity: ValidationSeverity
    value: Any = None
    suggestion: Optional[str] = None


@dataclass
class ValidationResult:
    """Result of config validation."""
    valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)

    def has_errors(self) -> bool:
        return any(i.severity == ValidationSeverity.ERROR for i in self.issues)

    def has_warnings(self) -> bool:
        return any(i.severity == ValidationSeverity.WARNING for i in self.issues)

    def get_errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.ERROR]

    def get_warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.WARNING]

    def get_infos(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.INFO]


class ConfigValidator:
    """
    Validates Settings before the matcher starts.

    Checks:
    - Required fields are present
    - Numeric values are within sane ranges
    - Addresses are well-formed
    - Risky configurations
    """

    # Range definitions: (min, max)
    NUMERIC_RANGES: Dict[str, Tuple[float, float]] = {
        "reconcile_interval": (1.0, 3600.0),
        "max_match_attempts": (1, 100),
        "price_tolerance_bps": (0, 10_000),
        "snapshot_concurrency": (1, 256),
        "expiry_sweep_batch": (1, 1000),
        "http_timeout": (1.0, 120.0),
        "receipt_timeout": (5.0, 3600.0),
    }

    REQUIRED_STRINGS: List[str] = [
        "rpc_url",
        "executor_address",
    ]

    def __init__(self) -> None:
        self._custom_validators: List[Callable[[Any], List[ValidationIssue]]] = []

    def register_validator(self, validator: Callable[[Any], List[ValidationIssue]]) -> None:
        """Register a custom validation function."""
        self._custom_validators.append(validator)

    def validate(self, cfg) -> ValidationResult:
        issues: List[ValidationIssue] = []
        issues.extend(self._validate_required_strings(cfg))
        issues.extend(self._validate_numeric_ranges(cfg))
        issues.extend(self._validate_addresses(cfg))
        issues.extend(self._check_risky_configs(cfg))

        for validator in self._custom_validators:
            try:
                custom_issues = validator(cfg)
                if custom_issues:
                    issues.extend(custom_issues)
            except Exception as e:
                logger.warning(f"Custom validator error: {e}")

        has_errors = any(i.severity == ValidationSeverity.ERROR for i in issues)
        return ValidationResult(valid=not has_errors, issues=issues)

    def _validate_required_strings(self, cfg) -> List[ValidationIssue]:
        issues = []
        for field_name in self.REQUIRED_STRINGS:
            value = getattr(cfg, field_name, None)
            if not value or (isinstance(value, str) and not value.strip()):
                issues.append(ValidationIssue(
                    field=field_name,
                    message=f"Required field '{field_name}' is missing or empty",
                    severity=ValidationSeverity.ERROR,
                    value=value,
                ))
        return issues

    def _validate_numeric_ranges(self, cfg) -> List[ValidationIssue]:
        issues = []
        for field_name, (min_val, max_val) in self.NUMERIC_RANGES.items():
            value = getattr(cfg, field_name, None)
            if value is None:
                continue
            try:
                num_value = float(value)
            except (TypeError, ValueError):
                issues.append(ValidationIssue(
                    field=field_name,
                    message=f"'{field_name}' has invalid numeric value: {value}",
                    severity=ValidationSeverity.ERROR,
                    value=value,
                ))
                continue
            if num_value < min_val:
                issues.append(ValidationIssue(
                    field=field_name,
                    message=f"'{field_name}' value {num_value} is below minimum {min_val}",
                    severity=ValidationSeverity.ERROR,
                    value=num_value,
                    suggestion=f"Set to at least {min_val}",
                ))
            elif num_value > max_val:
                issues.append(ValidationIssue(
                    field=field_name,
                    message=f"'{field_name}' value {num_value} is above maximum {max_val}",
                    severity=ValidationSeverity.ERROR,
                    value=num_value,
                    suggestion=f"Set to at most {max_val}",
                ))
        return issues

    def _validate_addresses(self, cfg) -> List[ValidationIssue]:
        issues = []
        # Format only; addresses are checksummed or lower-cased before use.
        executor = getattr(cfg, "executor_address", None)
        if executor and not is_address(executor.lower()):
            issues.append(ValidationIssue(
                field="executor_address",
                message=f"Executor address '{executor}' is not a valid address",
                severity=ValidationSeverity.ERROR,
                value=executor,
            ))
        for addr in getattr(cfg, "self_match_allowlist", None) or []:
            if not is_address(addr.lower()):
                issues.append(ValidationIssue(
                    field="self_match_allowlist",
                    message=f"Allow-list entry '{addr}' is not a valid address",
                    severity=ValidationSeverity.ERROR,
                    value=addr,
                    suggestion="Use comma-separated 0x-prefixed addresses",
                ))
        return issues

    def _check_risky_configs(self, cfg) -> List[ValidationIssue]:
        issues = []

        if not getattr(cfg, "private_key", None):
            issues.append(ValidationIssue(
                field="private_key",
                message="No signing key configured: running read-only, matches and cancels will fail",
                severity=ValidationSeverity.WARNING,
                suggestion="Set PRIVATE_KEY",
            ))

        bps = getattr(cfg, "price_tolerance_bps", 1)
        if bps > 100:
            issues.append(ValidationIssue(
                field="price_tolerance_bps",
                message=f"Price tolerance of {bps} bps may match orders that do not cross",
                severity=ValidationSeverity.WARNING,
                value=bps,
            ))

        if getattr(cfg, "dust_threshold", 0) == 0:
            issues.append(ValidationIssue(
                field="dust_threshold",
                message="Dust threshold is 0: no order will be treated as dust",
                severity=ValidationSeverity.INFO,
            ))

        interval = getattr(cfg, "reconcile_interval", 10.0)
        timeout = getattr(cfg, "receipt_timeout", 120.0)
        if timeout > interval * 10:
            issues.append(ValidationIssue(
                field="receipt_timeout",
                message=f"Receipt timeout ({timeout}s) spans many ticks; a slow cycle will drop them",
                severity=ValidationSeverity.INFO,
                value=timeout,
            ))

        return issues


def validate_config(cfg) -> ValidationResult:
    validator = ConfigValidator()
    return validator.validate(cfg)


def validate_and_log(cfg, logger_instance=None) -> bool:
    """
    Validate config and log all issues.

    Returns:
        True if config is valid (no errors), False otherwise
    """
    log = logger_instance or logger
    result = validate_config(cfg)

    for issue in result.get_errors():
        msg = f"CONFIG ERROR: {issue.message}"
        if issue.suggestion:
            msg += f" (suggestion: {issue.suggestion})"
        log.error(msg)

    for issue in result.get_warnings():
        msg = f"CONFIG WARNING: {issue.message}"
        if issue.suggestion:
            msg += f" (suggestion: {issue.suggestion})"
        log.warning(msg)

    for issue in result.get_infos():
        log.info(f"CONFIG NOTE: {issue.message}")

    if result.valid:
        log.info("Configuration validation passed")
    else:
        log.error(f"Configuration validation failed with {len(result.get_errors())} error(s)")

    return result.valid
