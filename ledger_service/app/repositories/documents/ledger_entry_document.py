"""원장 엔트리 MongoDB 도큐먼트.

idempotent=True 엔트리에는 (account_id, action_key) 부분 유니크 인덱스가 걸린다.
"""

from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.ledger import LedgerEntry


class LedgerEntryDocument(BaseDocument):
    """MongoDB ledger_entries 컬렉션 도큐먼트 모델."""

    account_id: str
    action_key: str
    amount: int
    idempotent: bool = False
    metadata: dict | None = None

    @classmethod
    def from_domain(cls, entry: LedgerEntry) -> "LedgerEntryDocument":
        data = build_document_data_from_domain(entry)
        return cls.model_validate(data)

    def to_domain(self) -> LedgerEntry:
        return LedgerEntry(
            id=from_object_id(self.id),
            account_id=self.account_id,
            action_key=self.action_key,
            amount=self.amount,
            idempotent=self.idempotent,
            metadata=self.metadata,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
