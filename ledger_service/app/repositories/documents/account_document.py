from __future__ import annotations

from common.models.account import Account, AccountRole
from common.mongo.types import (
    BaseDocument,
    MongoDateTime,
    build_document_data_from_domain,
)


class AccountDocument(BaseDocument):
    """MongoDB accounts 컬렉션 도큐먼트 모델."""

    account_id: str
    email: str | None = None
    display_name: str | None = None
    role: AccountRole = AccountRole.USER
    balance: int = 0
    cooldowns: dict[str, MongoDateTime] = {}

    @classmethod
    def from_domain(cls, account: Account) -> "AccountDocument":
        data = build_document_data_from_domain(account)
        return cls.model_validate(data)

    def to_mongo_record(self) -> dict:
        record = super().to_mongo_record()
        # StrEnum 은 BSON 인코딩 시 문자열로 저장한다.
        record["role"] = str(self.role)
        return record

    def to_domain(self) -> Account:
        return Account(
            account_id=self.account_id,
            email=self.email,
            display_name=self.display_name,
            role=self.role,
            balance=self.balance,
            cooldowns=dict(self.cooldowns),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
