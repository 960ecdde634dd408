"""
Service Request Service Data Repository

Data access layer - PostgreSQL (asyncpg)
Implements ServiceRequestRepositoryProtocol from protocols.py

Tables:
    service_requests, service_request_updates, partners,
    partner_services, partner_commissions
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClient, affected_rows

from .models import (
    Partner,
    PartnerCommission,
    RequestStatus,
    ServiceRequest,
    ServiceRequestUpdate,
)

logger = logging.getLogger(__name__)


def _numeric(value: Any) -> Optional[Decimal]:
    return None if value is None else Decimal(str(value))


class ServiceRequestRepository:
    """Service request repository - PostgreSQL (Async)"""

    def __init__(self, config: Optional[ConfigManager] = None, db: Optional[PostgresClient] = None):
        if config is None:
            config = ConfigManager("service_request_service")

        self.db = db or PostgresClient("service_request_service", config=config)
        self.schema = config.settings.infra.postgres_schema
        self.requests_table = "service_requests"
        self.updates_table = "service_request_updates"
        self.partners_table = "partners"
        self.partner_services_table = "partner_services"
        self.commissions_table = "partner_commissions"

    async def initialize(self):
        """Initialize database connection"""
        await self.db.connect()
        logger.info("Service request repository initialized with PostgreSQL")

    async def close(self):
        """Close database connection"""
        await self.db.close()
        logger.info("Service request repository database connection closed")

    # ====================
    # Requests
    # ====================

    async def create_request(self, client_id: str, data: Dict[str, Any]) -> ServiceRequest:
        """Insert a pending request"""
        try:
            now = datetime.now(timezone.utc)
            query = f'''
                INSERT INTO {self.schema}.{self.requests_table} (
                    id, client_id, title, description, category, status, priority,
                    budget_min, budget_max, deadline, partner_id, requirements,
                    created_at, updated_at
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $13)
                RETURNING *
            '''
            params = [
                str(uuid.uuid4()),
                client_id,
                data["title"],
                data.get("description"),
                data["category"],
                RequestStatus.PENDING.value,
                data.get("priority", "standard"),
                _numeric(data.get("budget_min")),
                _numeric(data.get("budget_max")),
                data.get("deadline"),
                data.get("partner_id"),
                data.get("requirements") or {},
                now,
            ]

            async with self.db:
                result = await self.db.query_row(query, params)

            logger.info(f"Created service request {result['id']} for {client_id}")
            return self._row_to_request(result)

        except Exception as e:
            logger.error(f"Error creating service request for {client_id}: {e}", exc_info=True)
            raise

    async def get_request(self, request_id: str) -> Optional[ServiceRequest]:
        try:
            query = f"SELECT * FROM {self.schema}.{self.requests_table} WHERE id = $1"

            async with self.db:
                result = await self.db.query_row(query, [request_id])

            return self._row_to_request(result) if result else None

        except Exception as e:
            logger.error(f"Error getting service request {request_id}: {e}", exc_info=True)
            raise

    async def list_requests(
        self,
        client_id: str,
        status: Optional[RequestStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ServiceRequest]:
        try:
            conditions = ["client_id = $1"]
            params: List[Any] = [client_id]
            if status:
                params.append(RequestStatus(status).value)
                conditions.append(f"status = ${len(params)}")

            params.extend([limit, offset])
            query = f'''
                SELECT * FROM {self.schema}.{self.requests_table}
                WHERE {" AND ".join(conditions)}
                ORDER BY created_at DESC
                LIMIT ${len(params) - 1} OFFSET ${len(params)}
            '''

            async with self.db:
                results = await self.db.query(query, params)

            return [self._row_to_request(row) for row in results]

        except Exception as e:
            logger.error(f"Error listing service requests for {client_id}: {e}", exc_info=True)
            raise

    async def transition_status(
        self,
        request_id: str,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        update: Dict[str, Any],
        partner_id: Optional[str] = None,
    ) -> Optional[Tuple[ServiceRequest, ServiceRequestUpdate]]:
        """Conditional status update and its audit entry, committed together"""
        now = datetime.now(timezone.utc)
        try:
            async with self.db.transaction() as tx:
                updated = await tx.query_row(
                    f'''
                    UPDATE {self.schema}.{self.requests_table}
                    SET status = $3, updated_at = $4, partner_id = COALESCE($5, partner_id)
                    WHERE id = $1 AND status = $2
                    RETURNING *
                    ''',
                    [
                        request_id,
                        RequestStatus(expected_status).value,
                        RequestStatus(new_status).value,
                        now,
                        partner_id,
                    ],
                )

                if updated is None:
                    logger.debug(f"Status conflict for {request_id}: expected {RequestStatus(expected_status).value}")
                    return None

                record = await self._insert_update(tx, request_id, update, created_at=now)

            return self._row_to_request(updated), record

        except Exception as e:
            logger.error(f"Error transitioning {request_id} to {new_status}: {e}", exc_info=True)
            raise

    async def delete_request(self, request_id: str) -> bool:
        try:
            query = f"DELETE FROM {self.schema}.{self.requests_table} WHERE id = $1"

            async with self.db:
                status = await self.db.execute(query, [request_id])

            deleted = affected_rows(status) > 0
            if deleted:
                logger.info(f"Deleted service request {request_id}")
            return deleted

        except Exception as e:
            logger.error(f"Error deleting service request {request_id}: {e}", exc_info=True)
            raise

    # ====================
    # Audit Trail
    # ====================

    async def _insert_update(
        self,
        conn,
        request_id: str,
        update: Dict[str, Any],
        created_at: Optional[datetime] = None,
    ) -> ServiceRequestUpdate:
        row = await conn.query_row(
            f'''
            INSERT INTO {self.schema}.{self.updates_table} (
                id, service_request_id, update_type, previous_status, new_status,
                title, description, updated_by, updated_by_role,
                is_visible_to_client, metadata, created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
            RETURNING *
            ''',
            [
                str(uuid.uuid4()),
                request_id,
                update["update_type"],
                update.get("previous_status"),
                update.get("new_status"),
                update["title"],
                update.get("description"),
                update.get("updated_by"),
                update["updated_by_role"],
                update.get("is_visible_to_client", True),
                update.get("metadata") or {},
                created_at or datetime.now(timezone.utc),
            ],
        )
        return self._row_to_update(row)

    async def add_update(self, request_id: str, update: Dict[str, Any]) -> ServiceRequestUpdate:
        """Append an audit entry without a status change"""
        try:
            async with self.db:
                return await self._insert_update(self.db, request_id, update)

        except Exception as e:
            logger.error(f"Error adding update to {request_id}: {e}", exc_info=True)
            raise

    async def list_updates(self, request_id: str, client_visible_only: bool = True) -> List[ServiceRequestUpdate]:
        try:
            query = f'''
                SELECT * FROM {self.schema}.{self.updates_table}
                WHERE service_request_id = $1
            '''
            if client_visible_only:
                query += " AND is_visible_to_client = TRUE"
            query += " ORDER BY created_at DESC"

            async with self.db:
                results = await self.db.query(query, [request_id])

            return [self._row_to_update(row) for row in results]

        except Exception as e:
            logger.error(f"Error listing updates for {request_id}: {e}", exc_info=True)
            raise

    # ====================
    # Partners
    # ====================

    async def get_partner(self, partner_id: str) -> Optional[Partner]:
        try:
            query = f'''
                SELECT id, company_name, status FROM {self.schema}.{self.partners_table}
                WHERE id = $1
            '''

            async with self.db:
                result = await self.db.query_row(query, [partner_id])

            if not result:
                return None
            return Partner(id=str(result["id"]), company_name=result["company_name"], status=result["status"])

        except Exception as e:
            logger.error(f"Error getting partner {partner_id}: {e}", exc_info=True)
            raise

    async def list_partner_commissions(self, partner_id: str) -> List[PartnerCommission]:
        try:
            query = f'''
                SELECT * FROM {self.schema}.{self.commissions_table}
                WHERE partner_id = $1
                ORDER BY created_at DESC
            '''

            async with self.db:
                results = await self.db.query(query, [partner_id])

            commissions = []
            for row in results:
                data = dict(row)
                data["id"] = str(data["id"])
                data["partner_id"] = str(data["partner_id"])
                if data.get("service_request_id") is not None:
                    data["service_request_id"] = str(data["service_request_id"])
                commissions.append(PartnerCommission(**data))
            return commissions

        except Exception as e:
            logger.error(f"Error listing commissions for {partner_id}: {e}", exc_info=True)
            raise

    async def count_active_partner_services(self, partner_id: str) -> int:
        try:
            query = f'''
                SELECT COUNT(*) AS total FROM {self.schema}.{self.partner_services_table}
                WHERE partner_id = $1 AND is_active = TRUE
            '''

            async with self.db:
                result = await self.db.query_row(query, [partner_id])

            return int(result["total"]) if result else 0

        except Exception as e:
            logger.error(f"Error counting services for {partner_id}: {e}", exc_info=True)
            raise

    # ====================
    # Row Mapping
    # ====================

    def _row_to_request(self, row: Dict[str, Any]) -> ServiceRequest:
        data = dict(row)
        data["id"] = str(data["id"])
        data["client_id"] = str(data["client_id"])
        if data.get("partner_id") is not None:
            data["partner_id"] = str(data["partner_id"])
        data["requirements"] = data.get("requirements") or {}
        data["priority"] = data.get("priority") or "standard"
        return ServiceRequest(**data)

    def _row_to_update(self, row: Dict[str, Any]) -> ServiceRequestUpdate:
        data = dict(row)
        data["id"] = str(data["id"])
        data["service_request_id"] = str(data["service_request_id"])
        if data.get("updated_by") is not None:
            data["updated_by"] = str(data["updated_by"])
        data["metadata"] = data.get("metadata") or {}
        return ServiceRequestUpdate(**data)
