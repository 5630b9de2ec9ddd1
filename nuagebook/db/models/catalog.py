"""Catalog models: books, navigation menus and key/value settings."""
from __future__ import annotations

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, String, Text

from .base import Base, iso, utcnow


class Book(Base):
    """Personalizable book product.

    `wizard_config` and `content_config` are free-form JSON trees edited by
    the admin console (wizard tabs/variants, page layout elements).
    """

    __tablename__ = "books"

    id = Column(String(120), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    old_price = Column(Float, nullable=True)
    promo_code = Column(String(64), nullable=True)
    cover_image = Column(String(512), nullable=True)
    theme = Column(String(120), nullable=True)
    category = Column(String(32), nullable=True)
    badge_text = Column(String(120), nullable=True)
    associated_paths = Column(JSON, nullable=False, default=list)
    is_hidden = Column(Boolean, nullable=False, default=False)
    features = Column(JSON, nullable=True)
    wizard_config = Column(JSON, nullable=True)
    content_config = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "oldPrice": self.old_price,
            "promoCode": self.promo_code,
            "coverImage": self.cover_image,
            "theme": self.theme,
            "category": self.category,
            "badgeText": self.badge_text,
            "associatedPaths": list(self.associated_paths or []),
            "isHidden": bool(self.is_hidden),
            "features": self.features,
            "wizardConfig": self.wizard_config,
            "contentConfig": self.content_config,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return "<Book id={0} name={1}>".format(self.id, self.name)


class Menu(Base):
    __tablename__ = "menus"

    id = Column(String(120), primary_key=True)
    label = Column(String(255), nullable=False)
    type = Column(String(16), nullable=False, default="simple")
    base_path = Column(String(255), nullable=True)
    items = Column(JSON, nullable=False, default=list)
    columns = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "basePath": self.base_path,
            "items": list(self.items or []),
            "columns": list(self.columns or []),
            "createdAt": iso(self.created_at),
        }


class Setting(Base):
    __tablename__ = "settings"

    key = Column(String(120), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {"key": self.key, "value": self.value, "updatedAt": iso(self.updated_at)}


__all__ = ["Book", "Menu", "Setting"]
