"""
SQLAlchemy 데이터베이스 모델

도메인 엔티티와 매핑되는 데이터베이스 테이블 모델을 정의합니다.
SQLite 호환성을 위해 UUID는 String으로, 워터마크 맵은 JSON으로 처리합니다.
시간 값은 타임존 정보 없이 UTC 기준으로 저장합니다.
"""

import uuid

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class DomainModel(Base):
    """도메인 테이블 모델"""

    __tablename__ = "domains"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    api_key = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # 관계 설정
    accounts = relationship(
        "HubSpotAccountModel",
        back_populates="domain",
        order_by="HubSpotAccountModel.position",
        cascade="all, delete-orphan",
    )


class HubSpotAccountModel(Base):
    """HubSpot 계정 테이블 모델"""

    __tablename__ = "hubspot_accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    domain_id = Column(String(36), ForeignKey("domains.id"), nullable=False, index=True)
    hub_id = Column(String(64), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)  # 처리 순서
    access_token = Column(Text)  # 암호화된 값
    refresh_token = Column(Text, nullable=False)  # 암호화된 값
    expires_at = Column(DateTime)
    last_pulled_dates = Column(JSON, nullable=False, default=dict)  # {엔티티: ISO 시간}
    status = Column(String(50), nullable=False, default="active", index=True)
    last_sync_at = Column(DateTime, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("domain_id", "hub_id", name="uq_hubspot_accounts_domain_hub"),
        Index("idx_hubspot_accounts_domain_position", "domain_id", "position"),
    )

    # 관계 설정
    domain = relationship("DomainModel", back_populates="accounts")
