"""ORM models for the permission catalog: modules, capabilities and role grants.

Both modules and capabilities are self-referential forests stored as rows with a
nullable parent id. No child collections are mapped; trees are assembled on demand.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String

from app.models.base import AuditMixin, Base


class Module(AuditMixin, Base):
    """Top-level functional area grouping related capabilities."""

    __tablename__ = "modules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    ref_code = Column(String(50), nullable=False, unique=True, index=True)
    parent_id = Column(Integer, ForeignKey("modules.id"), nullable=True)
    is_visible = Column(Boolean, nullable=False, default=True)
    logo_name = Column(String(100), nullable=True)
    redirect_page = Column(String(200), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    description = Column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Module(id={self.id}, ref_code={self.ref_code!r})>"


class Capability(AuditMixin, Base):
    """A single grantable permission ("module access"), optionally nested under a parent."""

    __tablename__ = "capabilities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    module_id = Column(Integer, ForeignKey("modules.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    ref_code = Column(String(50), nullable=False, unique=True, index=True)
    parent_id = Column(Integer, ForeignKey("capabilities.id"), nullable=True)
    description = Column(String(500), nullable=True)
    is_visible = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Capability(id={self.id}, ref_code={self.ref_code!r})>"


class RoleCapability(AuditMixin, Base):
    """Grant of one capability to one role. Replaced wholesale on permission updates."""

    __tablename__ = "role_capabilities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    capability_id = Column(
        Integer, ForeignKey("capabilities.id"), nullable=False, index=True
    )
