"""
Module: supply_kernel.models.reference
Responsibility: ORM persistence for reference data owned by outside
    collaborators: materials and vendors (master data), production batches
    and their recipe requirements (batch/recipe owner).  Persisted here so
    that referential checks, standard-cost defaults and recipe lookups work
    inside a single database transaction.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - material_code, vendor_code and batch_code are unique.
    - A batch has at most one recipe line per material.
    - standard_cost and required_qty are Decimal, never float.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supply_kernel.db.base import TrackedBase


class Material(TrackedBase):
    """
    A stockable material.

    Guarantees:
        - material_code is globally unique (uq_material_code).
        - uom and standard_cost are always present; standard_cost drives PO
          line defaults and batch cost rollups.
    """

    __tablename__ = "materials"

    __table_args__ = (
        UniqueConstraint("material_code", name="uq_material_code"),
        Index("idx_material_category", "category"),
    )

    material_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    uom: Mapped[str] = mapped_column(String(20), nullable=False)
    standard_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    default_vendor_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("vendors.id"), nullable=True
    )

    def to_dto(self):
        from supply_kernel.domain.dtos import MaterialInfo

        return MaterialInfo(
            id=self.id,
            material_code=self.material_code,
            name=self.name,
            uom=self.uom,
            standard_cost=self.standard_cost,
            category=self.category,
            default_vendor_id=self.default_vendor_id,
        )

    def __repr__(self) -> str:
        return f"<Material {self.material_code}>"


class Vendor(TrackedBase):
    """A supplier that purchase orders are issued to."""

    __tablename__ = "vendors"

    __table_args__ = (
        UniqueConstraint("vendor_code", name="uq_vendor_code"),
    )

    vendor_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_dto(self):
        from supply_kernel.domain.dtos import VendorInfo

        return VendorInfo(
            id=self.id,
            vendor_code=self.vendor_code,
            name=self.name,
            contact_person=self.contact_person,
            email=self.email,
            phone=self.phone,
            payment_terms=self.payment_terms,
        )

    def __repr__(self) -> str:
        return f"<Vendor {self.vendor_code}>"


class Batch(TrackedBase):
    """A production batch; its recipe lines state material requirements."""

    __tablename__ = "batches"

    __table_args__ = (
        UniqueConstraint("batch_code", name="uq_batch_code"),
    )

    batch_code: Mapped[str] = mapped_column(String(50), nullable=False)
    species: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    recipe_lines: Mapped[list["BatchRecipeLine"]] = relationship(
        "BatchRecipeLine",
        back_populates="batch",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dto(self):
        from supply_kernel.domain.dtos import BatchInfo

        return BatchInfo(
            id=self.id,
            batch_code=self.batch_code,
            species=self.species,
            status=self.status,
        )

    def __repr__(self) -> str:
        return f"<Batch {self.batch_code}>"


class BatchRecipeLine(TrackedBase):
    """Required quantity of one material for one batch."""

    __tablename__ = "batch_recipe_lines"

    __table_args__ = (
        UniqueConstraint("batch_id", "material_id", name="uq_batch_recipe_material"),
    )

    batch_id: Mapped[UUID] = mapped_column(ForeignKey("batches.id"), nullable=False)
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    required_qty: Mapped[Decimal] = mapped_column(nullable=False)

    batch: Mapped["Batch"] = relationship("Batch", back_populates="recipe_lines")

    def to_dto(self):
        from supply_kernel.domain.dtos import BatchRequirement

        return BatchRequirement(
            batch_id=self.batch_id,
            material_id=self.material_id,
            required_qty=self.required_qty,
        )
