"""SQLAlchemy models for curated content: categories, concerns, examples, legal documents."""

from sqlalchemy import Column, ForeignKey, Integer, String, Text

from healthle.models.base import Base


class HealthCategory(Base):
    """A dashboard genre such as 睡眠."""

    __tablename__ = "health_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)


class HealthConcern(Base):
    """A frequently consulted concern, used for suggestions."""

    __tablename__ = "health_concerns"

    id = Column(Integer, primary_key=True)
    description = Column(Text, nullable=False)
    category_id = Column(Integer, ForeignKey("health_categories.id"), index=True)


class ConsultationExample(Base):
    """Example concern text rotated on the dashboard."""

    __tablename__ = "consultation_examples"

    id = Column(Integer, primary_key=True)
    text = Column(Text, nullable=False)


class LegalDocument(Base):
    """Privacy policy or terms of service."""

    __tablename__ = "legal_documents"

    id = Column(Integer, primary_key=True)
    type = Column(String(50), nullable=False, unique=True)
    content = Column(Text, nullable=False)
