"""Text and JSON rendering of validation results and model analyses."""

import json
from typing import Literal

from ..graph.analyzer import CategoryAnalysis, ModelAnalysis
from ..validators.base import Severity, ValidationIssue, ValidationResult

OutputFormat = Literal["text", "json"]

_SYMBOLS = {Severity.ERROR: "✘", Severity.WARNING: "⚠"}


def format_validation_result(result: ValidationResult, format: OutputFormat = "text") -> str:
    """Format a validation result for output.

    Args:
        result: The validation result to format.
        format: Output format ("text" or "json").

    Returns:
        Formatted string representation.
    """
    if format == "json":
        return json.dumps(
            {
                "valid": result.is_valid,
                "error_count": len(result.errors),
                "warning_count": len(result.warnings),
                "issues": [issue.to_dict() for issue in result.issues],
            },
            indent=2,
        )

    lines: list[str] = []
    for title, issues in (("ERRORS", result.errors), ("WARNINGS", result.warnings)):
        lines.append(f"{title}:")
        lines.extend(f"  {_issue_line(issue)}" for issue in issues)
        if not issues:
            lines.append("  (none)")
        lines.append("")

    lines.append(_summary(result))
    return "\n".join(lines)


def _issue_line(issue: ValidationIssue) -> str:
    where = f"[{issue.location}] " if issue.location else ""
    return f"{_SYMBOLS.get(issue.severity, '-')} {issue.code}: {where}{issue.message}"


def _summary(result: ValidationResult) -> str:
    errors, warnings = len(result.errors), len(result.warnings)
    if not result.is_valid:
        return f"Validation failed: {errors} error(s), {warnings} warning(s)"
    if warnings:
        return f"Validation passed with {warnings} warning(s)"
    return "Validation passed"


def _category_dict(name: str, category: CategoryAnalysis) -> dict:
    return {
        "name": name,
        "root": category.root_key,
        "ordered": list(category.ordered),
        "dependencies": {node: list(deps) for node, deps in category.dependencies.items()},
    }


def format_analysis(analysis: ModelAnalysis, format: OutputFormat = "text") -> str:
    """Format the per-category creation order of a model.

    Text output lists each category's types in order, with the types each
    one depends on, followed by the order across all categories.
    """
    if format == "json":
        data = {
            "categories": [
                _category_dict(c.name, analysis.analysis(c.root_key))
                for c in analysis.categories
            ],
            "global": analysis.global_ordered_types(),
        }
        return json.dumps(data, indent=2)

    lines: list[str] = []
    for c in analysis.categories:
        category = analysis.analysis(c.root_key)
        lines.append(f"{c.name} ({c.root_key}):")
        if not category.ordered:
            lines.append("  (no entity types)")
        for index, node in enumerate(category.ordered, start=1):
            deps = category.dependencies.get(node, ())
            suffix = f" <- {', '.join(deps)}" if deps else ""
            lines.append(f"  {index}. {node}{suffix}")
        lines.append("")

    lines.append(f"Global order: {', '.join(analysis.global_ordered_types()) or '(empty)'}")
    return "\n".join(lines)
