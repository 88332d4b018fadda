"""
TARJETA CRC — infrastructure/repositories/postgres/store.py

Class: PostgresStoreRepository
  - INSERT de la tienda creada en el registro de STORE_OWNER (dentro de la UoW).
  - Lookup por owner (vista admin).
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from ....crosscutting.exceptions import DatabaseError
from ....domain.entities import Store, StoreStatus
from .base import PostgresRepositoryBase

_STORE_COLUMNS = (
    "id, name, email, owner_id, address, description, status, created_at, updated_at"
)


def _row_to_store(row: tuple) -> Store:
    try:
        status = StoreStatus(row[6])
    except ValueError as exc:
        raise DatabaseError(f"Invalid store status in database: {row[6]}") from exc

    return Store(
        id=row[0],
        name=row[1],
        email=row[2],
        owner_id=row[3],
        address=row[4],
        description=row[5],
        status=status,
        created_at=row[7],
        updated_at=row[8],
    )


class PostgresStoreRepository(PostgresRepositoryBase):
    conflict_message = "Store already exists"

    def create(self, store: Store) -> Store:
        row = self._fetchone(
            query=f"""
                INSERT INTO stores (id, name, email, owner_id, address, description, status)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING {_STORE_COLUMNS}
            """,
            params=(
                store.id,
                store.name,
                store.email,
                store.owner_id,
                store.address,
                store.description,
                store.status.value,
            ),
            log_msg="PostgresStoreRepository: create failed",
            log_extra={"store_id": str(store.id), "owner_id": str(store.owner_id)},
        )
        if not row:
            raise DatabaseError("PostgresStoreRepository: create returned no row")
        return _row_to_store(row)

    def get_by_owner(self, owner_id: UUID) -> Optional[Store]:
        row = self._fetchone(
            query=f"""
                SELECT {_STORE_COLUMNS}
                FROM stores
                WHERE owner_id = %s
                ORDER BY created_at ASC
                LIMIT 1
            """,
            params=(owner_id,),
            log_msg="PostgresStoreRepository: get_by_owner failed",
            log_extra={"owner_id": str(owner_id)},
        )
        return _row_to_store(row) if row else None
