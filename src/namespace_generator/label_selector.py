"""Label selector translation.

This module turns the structured ``labelSelector`` of a generate request
into a ``Selector`` that renders the Kubernetes ``label_selector`` query
string for list calls and can evaluate the same requirements against an
in-memory label mapping.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from namespace_generator.exceptions import ValidationError
from namespace_generator.models import LabelSelector

# Kubernetes qualified name validation (label keys)
_QUALIFIED_NAME_MAX_LENGTH = 63
_QUALIFIED_NAME_PATTERN = r"([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]"

# Kubernetes DNS subdomain validation (label key prefixes, RFC 1123)
_DNS_SUBDOMAIN_MAX_LENGTH = 253
_DNS_SUBDOMAIN_PATTERN = r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*"

# Label values may be empty
_LABEL_VALUE_MAX_LENGTH = 63
_LABEL_VALUE_PATTERN = rf"({_QUALIFIED_NAME_PATTERN})?"


class Operator(str, Enum):
    """Selector operators.

    ``EQUALS`` is produced from ``matchLabels``; the others are the operator
    names accepted in ``matchExpressions``.
    """

    EQUALS = "="
    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"


_EXPRESSION_OPERATORS = {op.value: op for op in Operator if op is not Operator.EQUALS}


def validate_label_key(key: str) -> str | None:
    """Validate a label key (qualified name with optional DNS subdomain prefix).

    Args:
        key: The label key to validate.

    Returns:
        None if valid, or an error message string if invalid.

    """
    prefix, _, name = key.rpartition("/")
    if "/" in key and not prefix:
        return f"label key {key!r} has an empty prefix"
    if prefix:
        if len(prefix) > _DNS_SUBDOMAIN_MAX_LENGTH:
            return f"label key prefix {prefix!r} must be {_DNS_SUBDOMAIN_MAX_LENGTH} characters or less"
        if not re.fullmatch(_DNS_SUBDOMAIN_PATTERN, prefix):
            return f"label key prefix {prefix!r} must be a lowercase RFC 1123 subdomain"
    if not name:
        return f"label key {key!r} has an empty name"
    if len(name) > _QUALIFIED_NAME_MAX_LENGTH:
        return f"label key name {name!r} must be {_QUALIFIED_NAME_MAX_LENGTH} characters or less"
    if not re.fullmatch(_QUALIFIED_NAME_PATTERN, name):
        return (
            f"label key name {name!r} must consist of alphanumeric characters, '-', '_' or '.', "
            "and must start and end with an alphanumeric character"
        )
    return None


def validate_label_value(value: str) -> str | None:
    """Validate a label value.

    Args:
        value: The label value to validate.

    Returns:
        None if valid, or an error message string if invalid.

    """
    if len(value) > _LABEL_VALUE_MAX_LENGTH:
        return f"label value {value!r} must be {_LABEL_VALUE_MAX_LENGTH} characters or less"
    if not re.fullmatch(_LABEL_VALUE_PATTERN, value):
        return (
            f"label value {value!r} must be empty or consist of alphanumeric characters, '-', '_' or '.', "
            "and must start and end with an alphanumeric character"
        )
    return None


@dataclass(frozen=True, slots=True)
class Requirement:
    """A single validated selector requirement."""

    key: str
    operator: Operator
    values: tuple[str, ...] = ()

    def matches(self, labels: Mapping[str, str]) -> bool:
        """Return True if the label mapping satisfies this requirement."""
        match self.operator:
            case Operator.EQUALS | Operator.IN:
                return self.key in labels and labels[self.key] in self.values
            case Operator.NOT_IN:
                return self.key not in labels or labels[self.key] not in self.values
            case Operator.EXISTS:
                return self.key in labels
            case Operator.DOES_NOT_EXIST:
                return self.key not in labels

    def __str__(self) -> str:
        """Render the requirement in Kubernetes selector syntax."""
        match self.operator:
            case Operator.EQUALS:
                return f"{self.key}={self.values[0]}"
            case Operator.IN:
                return f"{self.key} in ({','.join(sorted(self.values))})"
            case Operator.NOT_IN:
                return f"{self.key} notin ({','.join(sorted(self.values))})"
            case Operator.EXISTS:
                return self.key
            case Operator.DOES_NOT_EXIST:
                return f"!{self.key}"


@dataclass(frozen=True, slots=True)
class Selector:
    """A conjunction of requirements.

    An empty selector matches everything.
    """

    requirements: tuple[Requirement, ...] = ()

    def matches(self, labels: Mapping[str, str] | None) -> bool:
        """Return True if every requirement holds for the label mapping."""
        labels = labels or {}
        return all(requirement.matches(labels) for requirement in self.requirements)

    def to_query(self) -> str:
        """Render the ``label_selector`` query string for list calls."""
        return ",".join(str(requirement) for requirement in self.requirements)

    def __str__(self) -> str:
        return self.to_query()


def _check_conflicts(requirements: list[Requirement]) -> None:
    """Reject requirement sets that no label mapping can satisfy.

    Raises:
        ValidationError: If two requirements on the same key contradict each other.

    """
    by_key: dict[str, list[Requirement]] = {}
    for requirement in requirements:
        by_key.setdefault(requirement.key, []).append(requirement)

    for key, reqs in by_key.items():
        operators = {req.operator for req in reqs}
        if Operator.DOES_NOT_EXIST in operators and operators - {Operator.DOES_NOT_EXIST, Operator.NOT_IN}:
            raise ValidationError(f"conflicting requirements for label key {key!r}: key must both exist and not exist")

        # Intersect every positive value set; NotIn values are removed from it
        allowed: set[str] | None = None
        for req in reqs:
            if req.operator in (Operator.EQUALS, Operator.IN):
                allowed = set(req.values) if allowed is None else allowed & set(req.values)
        if allowed is None:
            continue
        for req in reqs:
            if req.operator is Operator.NOT_IN:
                allowed -= set(req.values)
        if not allowed:
            raise ValidationError(f"conflicting requirements for label key {key!r}: no value can satisfy all of them")


def translate_selector(label_selector: LabelSelector | None) -> Selector:
    """Translate a structured label selector into a ``Selector``.

    ``matchLabels`` entries become equality requirements and
    ``matchExpressions`` become set-based requirements; all of them are
    combined with logical AND. Requirements are ordered by key, as the
    Kubernetes API server does.

    Args:
        label_selector: The selector from the generate request. None or an
            empty selector matches every namespace.

    Returns:
        The validated selector.

    Raises:
        ValidationError: If an operator, key or value is invalid, or the
            requirements conflict.

    """
    if label_selector is None:
        return Selector()

    requirements: list[Requirement] = []

    for key, value in (label_selector.match_labels or {}).items():
        for problem in (validate_label_key(key), validate_label_value(value)):
            if problem:
                raise ValidationError(problem)
        requirements.append(Requirement(key=key, operator=Operator.EQUALS, values=(value,)))

    for expression in label_selector.match_expressions or []:
        operator = _EXPRESSION_OPERATORS.get(expression.operator)
        if operator is None:
            raise ValidationError(f"{expression.operator!r} is not a valid label selector operator")
        problem = validate_label_key(expression.key)
        if problem:
            raise ValidationError(problem)

        values = tuple(expression.values or ())
        if operator in (Operator.IN, Operator.NOT_IN):
            if not values:
                raise ValidationError(f"values must be non-empty for operator {operator.value} on {expression.key!r}")
            for value in values:
                problem = validate_label_value(value)
                if problem:
                    raise ValidationError(problem)
        elif values:
            raise ValidationError(f"values must be empty for operator {operator.value} on {expression.key!r}")

        requirements.append(Requirement(key=expression.key, operator=operator, values=values))

    _check_conflicts(requirements)
    requirements.sort(key=lambda requirement: requirement.key)

    return Selector(requirements=tuple(requirements))
