"""
Execution Update Module.

Describes the optional field changes applied to a freshly imported
Test Execution issue, and the Jira "edit issue" bodies they map to.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

DEFAULT_TEST_ENVIRONMENTS_FIELD = "customfield_15567"


def is_blank(value: Optional[str]) -> bool:
    """Return True for None, empty or whitespace-only strings."""
    return value is None or not str(value).strip()


def split_multi_value(value: Optional[str], separator: str = ";") -> List[str]:
    """
    Split a separator-delimited input into its entries.

    Order is preserved; entries are neither trimmed nor de-duplicated.

    Examples:
        "QA;PROD" -> ["QA", "PROD"]
        "" -> []
    """
    if is_blank(value):
        return []
    return str(value).split(separator)


def summary_fields(summary: str) -> Dict[str, Any]:
    return {"summary": summary}


def description_fields(description: str) -> Dict[str, Any]:
    return {"description": description}


def assignee_fields(assignee: str) -> Dict[str, Any]:
    return {"assignee": {"name": assignee}}


def test_environments_fields(
    environments: List[str],
    field_id: str = DEFAULT_TEST_ENVIRONMENTS_FIELD,
) -> Dict[str, Any]:
    return {field_id: list(environments)}


def affected_versions_fields(versions: List[str]) -> Dict[str, Any]:
    # Version fields take [{"name": "1.0"}, {"name": "1.1"}]
    return {"versions": [{"name": version} for version in versions]}


def labels_fields(labels: List[str]) -> Dict[str, Any]:
    return {"labels": list(labels)}


@dataclass
class ExecutionUpdateRequest:
    """
    Field changes applied to a Test Execution issue.

    A field stays None when its input was blank and the corresponding
    update was skipped. List fields hold the ;-split input.

    Attributes:
        summary: New issue summary.
        description: New issue description.
        assignee: Jira user name to assign.
        test_environments: Values for the Test Environments custom field.
        affected_versions: Names of the affected versions.
        labels: Issue labels.
    """

    summary: Optional[str] = None
    description: Optional[str] = None
    assignee: Optional[str] = None
    test_environments: Optional[List[str]] = None
    affected_versions: Optional[List[str]] = None
    labels: Optional[List[str]] = None

    @property
    def is_empty(self) -> bool:
        """Check if no field change was requested."""
        return not any(
            (
                self.summary,
                self.description,
                self.assignee,
                self.test_environments,
                self.affected_versions,
                self.labels,
            )
        )

    def to_fields(
        self, test_environments_field: str = DEFAULT_TEST_ENVIRONMENTS_FIELD
    ) -> Dict[str, Any]:
        """
        Merge every requested change into a single "fields" mapping.

        The pipeline sends one PUT per field; this combined view is used for
        logging and reporting.
        """
        fields: Dict[str, Any] = {}
        if self.summary is not None:
            fields.update(summary_fields(self.summary))
        if self.description is not None:
            fields.update(description_fields(self.description))
        if self.assignee is not None:
            fields.update(assignee_fields(self.assignee))
        if self.test_environments:
            fields.update(
                test_environments_fields(self.test_environments, test_environments_field)
            )
        if self.affected_versions:
            fields.update(affected_versions_fields(self.affected_versions))
        if self.labels:
            fields.update(labels_fields(self.labels))
        return fields
