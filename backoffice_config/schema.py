"""
Back-office configuration schema.

Frozen dataclasses for every tunable the workflow engine reads: approver
routing, document numbering, eligibility rules, finance sync defaults and
the per-category reimbursement detail schemas.  YAML files are parsed into
these types by ``backoffice_config.loader``; services receive a
``BackofficeConfig`` and never read files themselves.

``BackofficeConfig.with_defaults()`` mirrors ``sets/default.yaml`` so that
services constructed without a config behave exactly like the shipped set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_ROLE_BY_ORGANIZATION = {
    "school": "finance_school",
    "company": "finance_company",
}


# ---------------------------------------------------------------------------
# Approver routing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApproverRoutingConfig:
    """Maps an organization scope to the role whose holders approve it."""

    role_by_organization: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_ROLE_BY_ORGANIZATION)
    )

    def __post_init__(self):
        if not self.role_by_organization:
            raise ValueError("role_by_organization cannot be empty")
        for scope, role in self.role_by_organization.items():
            if not scope or not role or not str(role).strip():
                raise ValueError(f"invalid approver routing entry {scope!r} -> {role!r}")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ApproverRoutingConfig:
        if not data:
            return cls()
        return cls(role_by_organization={str(k): str(v) for k, v in data.items()})


# ---------------------------------------------------------------------------
# Numbering
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NumberingConfig:
    """Document number prefixes; numbers are ``prefix + YYYYMM + seq``."""

    purchase_prefix: str = "PC"
    reimbursement_prefix: str = "RB"
    sequence_width: int = 4

    def __post_init__(self):
        if not self.purchase_prefix or not self.reimbursement_prefix:
            raise ValueError("number prefixes cannot be empty")
        if self.purchase_prefix == self.reimbursement_prefix:
            raise ValueError("purchase and reimbursement prefixes must differ")
        if self.sequence_width < 1:
            raise ValueError("sequence_width must be at least 1")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> NumberingConfig:
        data = data or {}
        return cls(
            purchase_prefix=data.get("purchase_prefix", "PC"),
            reimbursement_prefix=data.get("reimbursement_prefix", "RB"),
            sequence_width=int(data.get("sequence_width", 4)),
        )


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EligibilityConfig:
    """Cross-entity rules for purchase-sourced reimbursements."""

    non_reimbursable_payment_methods: frozenset[str] = frozenset({"corporate_transfer"})
    inbound_ready_statuses: frozenset[str] = frozenset({"approved", "paid"})
    require_inbound_movement: bool = True

    def __post_init__(self):
        if not self.inbound_ready_statuses:
            raise ValueError("inbound_ready_statuses cannot be empty")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> EligibilityConfig:
        data = data or {}
        defaults = cls()
        return cls(
            non_reimbursable_payment_methods=frozenset(
                data.get(
                    "non_reimbursable_payment_methods",
                    defaults.non_reimbursable_payment_methods,
                )
            ),
            inbound_ready_statuses=frozenset(
                data.get("inbound_ready_statuses", defaults.inbound_ready_statuses)
            ),
            require_inbound_movement=bool(data.get("require_inbound_movement", True)),
        )


# ---------------------------------------------------------------------------
# Finance sync
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FinanceSyncConfig:
    """Defaults applied when a paid document is written to the ledger table."""

    purchase_category: str = "purchase"

    def __post_init__(self):
        if not self.purchase_category or not self.purchase_category.strip():
            raise ValueError("purchase_category cannot be empty")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FinanceSyncConfig:
        data = data or {}
        return cls(purchase_category=data.get("purchase_category", "purchase"))


# ---------------------------------------------------------------------------
# Reimbursement category detail schemas
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryFieldDef:
    """One allowed key of a category's ``details`` map."""

    key: str
    label: str = ""
    required: bool = False

    def __post_init__(self):
        if not self.key or not self.key.strip():
            raise ValueError("category field key cannot be empty")


@dataclass(frozen=True)
class CategorySchema:
    category: str
    fields: tuple[CategoryFieldDef, ...] = ()

    @property
    def allowed_keys(self) -> tuple[str, ...]:
        return tuple(f.key for f in self.fields)

    @property
    def required_keys(self) -> tuple[str, ...]:
        return tuple(f.key for f in self.fields if f.required)

    @classmethod
    def from_dict(cls, category: str, data: list[dict[str, Any]] | None) -> CategorySchema:
        return cls(
            category=category,
            fields=tuple(
                CategoryFieldDef(
                    key=item["key"],
                    label=item.get("label", ""),
                    required=bool(item.get("required", False)),
                )
                for item in (data or [])
            ),
        )


def _fields(*specs: tuple[str, str, bool]) -> tuple[CategoryFieldDef, ...]:
    return tuple(CategoryFieldDef(key=k, label=label, required=req) for k, label, req in specs)


DEFAULT_CATEGORY_SCHEMAS: dict[str, CategorySchema] = {
    "transport": CategorySchema(
        "transport",
        _fields(
            ("from_location", "From", True),
            ("to_location", "To", True),
            ("transport_mode", "Mode", False),
            ("travel_date", "Travel date", False),
        ),
    ),
    "meals": CategorySchema(
        "meals",
        _fields(
            ("meal_date", "Meal date", True),
            ("attendees", "Attendees", False),
            ("location", "Location", False),
        ),
    ),
    "travel": CategorySchema(
        "travel",
        _fields(
            ("destination", "Destination", True),
            ("start_date", "Start date", True),
            ("end_date", "End date", True),
            ("trip_purpose", "Trip purpose", False),
        ),
    ),
    "office": CategorySchema(
        "office",
        _fields(
            ("item_name", "Item", True),
            ("quantity", "Quantity", False),
        ),
    ),
    "entertainment": CategorySchema(
        "entertainment",
        _fields(
            ("client_name", "Client", True),
            ("attendees", "Attendees", False),
            ("entertainment_date", "Date", False),
        ),
    ),
    "logistics": CategorySchema(
        "logistics",
        _fields(
            ("carrier", "Carrier", True),
            ("tracking_no", "Tracking number", False),
            ("ship_date", "Ship date", False),
        ),
    ),
    "purchase_reimbursement": CategorySchema(
        "purchase_reimbursement",
        _fields(
            ("purchase_number", "Purchase number", False),
            ("supplier_name", "Supplier", False),
        ),
    ),
    "other": CategorySchema(
        "other",
        _fields(("remark", "Remark", False)),
    ),
}


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BackofficeConfig:
    """Root configuration object handed to every module service."""

    config_id: str = "default"
    version: int = 1
    routing: ApproverRoutingConfig = field(default_factory=ApproverRoutingConfig)
    numbering: NumberingConfig = field(default_factory=NumberingConfig)
    eligibility: EligibilityConfig = field(default_factory=EligibilityConfig)
    finance_sync: FinanceSyncConfig = field(default_factory=FinanceSyncConfig)
    categories: dict[str, CategorySchema] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_SCHEMAS)
    )

    def __post_init__(self):
        if not self.config_id:
            raise ValueError("config_id cannot be empty")
        if self.version < 1:
            raise ValueError("version must be positive")

    def category_schema(self, category: str) -> CategorySchema | None:
        return self.categories.get(category)

    @classmethod
    def with_defaults(cls) -> BackofficeConfig:
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackofficeConfig:
        """Build a config from a parsed YAML mapping; absent sections use defaults."""
        categories_data = data.get("categories")
        if categories_data is None:
            categories = dict(DEFAULT_CATEGORY_SCHEMAS)
        else:
            categories = {
                name: CategorySchema.from_dict(name, fields)
                for name, fields in categories_data.items()
            }
        return cls(
            config_id=data.get("config_id", "default"),
            version=int(data.get("version", 1)),
            routing=ApproverRoutingConfig.from_dict(data.get("approver_routing")),
            numbering=NumberingConfig.from_dict(data.get("numbering")),
            eligibility=EligibilityConfig.from_dict(data.get("eligibility")),
            finance_sync=FinanceSyncConfig.from_dict(data.get("finance_sync")),
            categories=categories,
        )
