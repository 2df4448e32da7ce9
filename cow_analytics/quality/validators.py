"""
Data Validation Module

Rule-based quality checks over polars frames of the star schema.

Features:
- Null and uniqueness checks
- Range and allowed-value checks
- Id pattern checks
- Referential integrity against the location dimension
- Custom frame predicates
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

import polars as pl
import structlog

from cow_analytics.models import EbuRoyalCategory, MovementType

logger = structlog.get_logger(__name__)

Check = Callable[[pl.DataFrame], "ValidationCheck"]


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "total_checks": self.total_checks,
            "passed_checks": self.passed_checks,
            "failed_checks": self.failed_checks,
            "warning_count": self.warning_count,
            "failures": [
                {"name": c.name, "severity": c.severity.value, "message": c.message, "failed_rows": c.failed_rows}
                for c in self.checks
                if not c.passed
            ],
        }


def _missing_column(name: str, column: str, severity: ValidationSeverity) -> ValidationCheck:
    return ValidationCheck(
        name=name,
        passed=False,
        severity=severity,
        message=f"Column '{column}' not found",
    )


def _count_check(
    name: str,
    failed: int,
    total: int,
    severity: ValidationSeverity,
    fail_message: str,
    details: Optional[Dict[str, Any]] = None,
) -> ValidationCheck:
    passed = failed == 0
    return ValidationCheck(
        name=name,
        passed=passed,
        severity=severity,
        message=fail_message if not passed else f"{name} passed",
        details=details,
        failed_rows=failed,
        total_rows=total,
    )


class DataValidator:
    """
    Fluent validator: register checks, then run them over a frame.

    Example:
        validator = DataValidator()
        validator.add_not_null_check("COW_ID")
        validator.add_range_check("Distance_KM", min_value=0)
        result = validator.validate(df)
    """

    def __init__(self, strict_mode: bool = False):
        # Warnings fail the suite in strict mode
        self.strict_mode = strict_mode
        self._checks: List[Check] = []

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        name = f"not_null_{column}"

        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return _missing_column(name, column, severity)
            null_count = df[column].null_count()
            return _count_check(
                name, null_count, df.height, severity,
                f"Column '{column}' has {null_count} null values",
                {"null_count": null_count},
            )

        self._checks.append(check)
        return self

    def add_unique_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for uniqueness of column values"""
        name = f"unique_{column}"

        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return _missing_column(name, column, severity)
            duplicates = df.height - df[column].n_unique()
            return _count_check(
                name, duplicates, df.height, severity,
                f"Column '{column}' has {duplicates} duplicate values",
            )

        self._checks.append(check)
        return self

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for non-null values within [min_value, max_value]"""
        name = f"range_{column}"

        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return _missing_column(name, column, severity)

            conditions = []
            if min_value is not None:
                conditions.append(pl.col(column) < min_value)
            if max_value is not None:
                conditions.append(pl.col(column) > max_value)
            if not conditions:
                return ValidationCheck(name=name, passed=True, severity=severity, message="No range specified")

            combined = conditions[0]
            for cond in conditions[1:]:
                combined = combined | cond

            out_of_range = df.filter(combined).height
            return _count_check(
                name, out_of_range, df.height, severity,
                f"Column '{column}' has {out_of_range} values outside [{min_value}, {max_value}]",
                {"min": min_value, "max": max_value},
            )

        self._checks.append(check)
        return self

    def add_pattern_check(
        self,
        column: str,
        pattern: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add regex check on non-null string values"""
        name = f"pattern_{column}"

        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return _missing_column(name, column, severity)
            non_matching = df.filter(
                pl.col(column).is_not_null() & ~pl.col(column).str.contains(pattern)
            ).height
            return _count_check(
                name, non_matching, df.height, severity,
                f"Column '{column}' has {non_matching} values not matching {pattern}",
                {"pattern": pattern},
            )

        self._checks.append(check)
        return self

    def add_enum_check(
        self,
        column: str,
        allowed_values: Iterable[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values in allowed set"""
        name = f"enum_{column}"
        allowed = list(allowed_values)

        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return _missing_column(name, column, severity)
            invalid = df.filter(
                pl.col(column).is_not_null() & ~pl.col(column).is_in(allowed)
            ).height
            return _count_check(
                name, invalid, df.height, severity,
                f"Column '{column}' has {invalid} values outside {allowed}",
            )

        self._checks.append(check)
        return self

    def add_referential_integrity_check(
        self,
        column: str,
        reference_values: Iterable[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check that every non-null value exists in the reference set"""
        name = f"ref_integrity_{column}"
        reference = sorted(set(reference_values))

        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return _missing_column(name, column, severity)
            if reference:
                orphans = df.filter(
                    pl.col(column).is_not_null() & ~pl.col(column).is_in(reference)
                ).height
            else:
                orphans = df.height - df[column].null_count()
            return _count_check(
                name, orphans, df.height, severity,
                f"Column '{column}' has {orphans} orphan records",
            )

        self._checks.append(check)
        return self

    def add_custom_check(
        self,
        name: str,
        check_func: Callable[[pl.DataFrame], bool],
        message_on_fail: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add a frame-level predicate"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            passed = bool(check_func(df))
            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message="Check passed" if passed else message_on_fail,
                total_rows=df.height,
            )

        self._checks.append(check)
        return self

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on DataFrame.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        results = [check(df) for check in self._checks]

        for result in results:
            if not result.passed:
                logger.warning(
                    "Validation failed",
                    check=result.name,
                    message=result.message,
                    severity=result.severity.value,
                )

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0 and self.strict_mode:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        logger.info(
            "Validation complete",
            status=status.value,
            rows=df.height,
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )

        return ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
        )


def create_movements_validator(location_ids: Iterable[str]) -> DataValidator:
    """Pre-configured suite for the movement fact table"""
    location_ids = list(location_ids)
    return (
        DataValidator()
        .add_not_null_check("COW_ID")
        .add_not_null_check("From_Location_ID")
        .add_not_null_check("To_Location_ID")
        .add_unique_check("SN")
        .add_range_check("Distance_KM", min_value=0)
        .add_pattern_check("From_Location_ID", r"^LOC-")
        .add_pattern_check("To_Location_ID", r"^LOC-")
        .add_enum_check("Movement_Type", [t.value for t in MovementType])
        .add_enum_check("EbuRoyalCategory", [c.value for c in EbuRoyalCategory])
        .add_referential_integrity_check("From_Location_ID", location_ids)
        .add_referential_integrity_check("To_Location_ID", location_ids)
        .add_not_null_check("Moved_DateTime", severity=ValidationSeverity.WARNING)
        .add_not_null_check("Reached_DateTime", severity=ValidationSeverity.WARNING)
        .add_custom_check(
            "reached_not_before_moved",
            lambda df: df.filter(pl.col("Reached_DateTime") < pl.col("Moved_DateTime")).height == 0,
            "Some movements arrive before they depart",
            severity=ValidationSeverity.WARNING,
        )
    )
