"""
Typed data model for the blueprint engine.

Validation reports, fix audit records, catalog entries and the
platform-neutral canonical graph. Blueprint documents themselves stay
plain JSON dicts in their platform's schema; these models describe what
the engine says about them.

Every model serializes to the camelCase JSON shape via to_json().
"""

from typing import Any, Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

IssueType = Literal["structure", "module_name", "parameters", "connections", "metadata"]
WarningType = Literal["best_practice", "optimization", "compatibility"]


class _JsonModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# ─────────────────────────────────────────
# Catalog
# ─────────────────────────────────────────

class ModuleCatalogEntry(_JsonModel):
    """One known building block. Loaded once, never mutated."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    canonical_name: str = Field(alias="canonicalName")
    category: str
    description: str = ""
    platform: str
    trigger: bool = False
    branching: bool = False
    known_aliases: FrozenSet[str] = Field(default_factory=frozenset, alias="knownAliases")


class Resolution(_JsonModel):
    valid: bool
    canonical_name: Optional[str] = Field(default=None, alias="canonicalName")
    category: Optional[str] = None


# ─────────────────────────────────────────
# Validation
# ─────────────────────────────────────────

class ValidationIssue(_JsonModel):
    type: IssueType
    message: str
    location: Optional[str] = None
    suggested_fix: Optional[str] = Field(default=None, alias="suggestedFix")


class ValidationWarning(_JsonModel):
    type: WarningType
    message: str
    location: Optional[str] = None


class Fix(_JsonModel):
    """Audit record of one deterministic repair."""
    kind: str
    description: str
    old_value: Any = Field(default=None, alias="oldValue")
    new_value: Any = Field(default=None, alias="newValue")
    applied: bool = False


class ValidationResult(_JsonModel):
    is_valid: bool = Field(alias="isValid")
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationWarning] = Field(default_factory=list)
    fixes: Optional[List[Fix]] = None

    def to_json(self) -> dict:
        data = super().to_json()
        if data.get("fixes") is None:
            data.pop("fixes", None)
        return data


# ─────────────────────────────────────────
# Canonical graph (conversion hub)
# ─────────────────────────────────────────

class CanonicalNode(_JsonModel):
    key: int                           # 1-based position in the canonical graph
    source_ref: Any = Field(default=None, alias="sourceRef")   # id or name in the source document
    name: str
    service: str                       # neutral service token, e.g. "slack"
    source_type: str = Field(alias="sourceType")
    is_trigger: bool = Field(default=False, alias="isTrigger")
    version: int = 1
    parameters: Dict[str, Any] = Field(default_factory=dict)
    mapper: Dict[str, Any] = Field(default_factory=dict)


class CanonicalEdge(_JsonModel):
    source: int
    target: int
    branch_condition: Any = Field(default=None, alias="branchCondition")
    source_output: int = Field(default=0, alias="sourceOutput")
    target_input: int = Field(default=0, alias="targetInput")
    connection_type: str = Field(default="main", alias="connectionType")


class CanonicalWorkflow(_JsonModel):
    name: str = "Converted Workflow"
    description: Optional[str] = None
    source_platform: str = Field(alias="sourcePlatform")
    nodes: List[CanonicalNode] = Field(default_factory=list)
    edges: List[CanonicalEdge] = Field(default_factory=list)


class DegradedNode(_JsonModel):
    name: str
    source_type: str = Field(alias="sourceType")
    fallback_type: str = Field(alias="fallbackType")
    reason: str


class ConversionResult(_JsonModel):
    source_platform: str = Field(alias="sourcePlatform")
    target_platform: str = Field(alias="targetPlatform")
    workflow: Dict[str, Any]
    degraded_nodes: List[DegradedNode] = Field(default_factory=list, alias="degradedNodes")
    warnings: List[str] = Field(default_factory=list)
    validation: Optional[ValidationResult] = None

    def to_json(self) -> dict:
        data = super().to_json()
        if self.validation is not None:
            data["validation"] = self.validation.to_json()
        return data
