"""Leveraged farming positions: obligations, user farms and liquidations."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from aggregation.errors import DuplicateOpenRecordError, DuplicateRecordError
from aggregation.matchers import ByField, Matcher
from aggregation.queries import Page, fetch_page
from aggregation.repositories.base import Repository
from aggregation.upsert import upsert
from backend.db.models import (
    V1LiquidatedPosition,
    V1ObligationAccount,
    V1ObligationLtv,
    V1UserFarm,
)

logger = logging.getLogger(__name__)


class PositionRepository(Repository):
    def put_v1_obligation_account(self, account: str, authority: str) -> None:
        """Register an obligation account; an account is only ever registered once."""
        matcher = ByField("account", [account])

        def reject(row: V1ObligationAccount) -> None:
            raise DuplicateRecordError(
                f"obligation account already registered to {row.authority}",
                entity=V1ObligationAccount.__tablename__,
                matcher=matcher.describe(),
            )

        with self._transaction() as session:
            upsert(
                session,
                V1ObligationAccount,
                matcher,
                create=lambda: V1ObligationAccount(account=account, authority=authority),
                mutate=reject,
            )

    def get_v1_obligation_account(self, matcher: Matcher) -> list[V1ObligationAccount]:
        return self._get(V1ObligationAccount, matcher)

    def delete_v1_obligation_account(self, matcher: Matcher) -> int:
        return self._delete(V1ObligationAccount, matcher)

    def put_v1_obligation_ltv(
        self,
        authority: str,
        user_farm: str,
        account_address: str,
        leveraged_farm: str,
        ltv: float,
        scraped_at: datetime,
    ) -> None:
        def create() -> V1ObligationLtv:
            return V1ObligationLtv(
                authority=authority,
                user_farm=user_farm,
                account_address=account_address,
                leveraged_farm=leveraged_farm,
                ltv=ltv,
                scraped_at=scraped_at,
            )

        def refresh(row: V1ObligationLtv) -> None:
            row.authority = authority
            row.user_farm = user_farm
            row.leveraged_farm = leveraged_farm
            row.ltv = ltv
            row.scraped_at = scraped_at

        with self._transaction() as session:
            upsert(
                session,
                V1ObligationLtv,
                ByField("account_address", [account_address]),
                create=create,
                mutate=refresh,
            )

    def get_v1_obligation_ltv(self, matcher: Matcher) -> list[V1ObligationLtv]:
        return self.query_paginated_v1_obligations(matcher).rows

    def get_v1_obligation_ltv_sorted(self, matcher: Matcher) -> list[V1ObligationLtv]:
        """Matching obligations, least leveraged first."""
        return self._get(V1ObligationLtv, matcher, order_by=V1ObligationLtv.ltv.asc())

    def delete_v1_obligation_ltv(self, matcher: Matcher) -> int:
        return self._delete(V1ObligationLtv, matcher)

    def query_paginated_v1_obligations(
        self,
        matcher: Matcher,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> Page[V1ObligationLtv]:
        with self._transaction() as session:
            return fetch_page(session, V1ObligationLtv, matcher, page=page, per_page=per_page)

    def put_v1_user_farm(
        self,
        authority: str,
        account_address: str,
        leveraged_farm: str,
        obligations: Sequence[str],
        obligation_indexes: Sequence[int],
    ) -> None:
        obligations = list(obligations)
        obligation_indexes = [int(index) for index in obligation_indexes]

        def create() -> V1UserFarm:
            return V1UserFarm(
                authority=authority,
                account_address=account_address,
                leveraged_farm=leveraged_farm,
                obligations=obligations,
                obligation_indexes=obligation_indexes,
            )

        def refresh(row: V1UserFarm) -> None:
            row.obligations = list(obligations)
            row.obligation_indexes = list(obligation_indexes)
            row.leveraged_farm = leveraged_farm

        with self._transaction() as session:
            upsert(
                session,
                V1UserFarm,
                ByField("account_address", [account_address]),
                create=create,
                mutate=refresh,
            )

    def get_v1_user_farm(self, matcher: Matcher) -> list[V1UserFarm]:
        return self.query_paginated_v1_user_farms(matcher).rows

    def delete_v1_user_farm(self, matcher: Matcher) -> int:
        return self._delete(V1UserFarm, matcher)

    def query_paginated_v1_user_farms(
        self,
        matcher: Matcher,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> Page[V1UserFarm]:
        with self._transaction() as session:
            return fetch_page(session, V1UserFarm, matcher, page=page, per_page=per_page)

    def put_v1_liquidated_position(
        self,
        temp_liquidation_account: str,
        authority: str,
        user_farm: str,
        liquidation_event_id: str,
        obligation: str,
        leveraged_farm: str,
        started_at: datetime,
        ended_at: Optional[datetime] = None,
    ) -> None:
        """Open, or close, the liquidation identified by ``liquidation_event_id``.

        A new event is inserted as given, open or already closed. For a known
        event only a call carrying ``ended_at`` is accepted: it closes the
        record and refreshes ``leveraged_farm``. Any other repeat raises
        ``DuplicateOpenRecordError``.
        """
        matcher = ByField("liquidation_event_id", [liquidation_event_id])

        def create() -> V1LiquidatedPosition:
            return V1LiquidatedPosition(
                temp_liquidation_account=temp_liquidation_account,
                authority=authority,
                user_farm=user_farm,
                liquidation_event_id=liquidation_event_id,
                obligation=obligation,
                leveraged_farm=leveraged_farm,
                started_at=started_at,
                ended_at=ended_at,
            )

        def close(row: V1LiquidatedPosition) -> None:
            if ended_at is None:
                raise DuplicateOpenRecordError(
                    f"liquidation already recorded for {temp_liquidation_account}",
                    entity=V1LiquidatedPosition.__tablename__,
                    matcher=matcher.describe(),
                )
            row.ended_at = ended_at
            row.leveraged_farm = leveraged_farm
            logger.info("Closed liquidation %s at %s.", liquidation_event_id, ended_at.isoformat())

        with self._transaction() as session:
            upsert(session, V1LiquidatedPosition, matcher, create=create, mutate=close)

    def get_v1_liquidated_position(self, matcher: Matcher) -> list[V1LiquidatedPosition]:
        return self.query_paginated_v1_liquidated_positions(matcher).rows

    def delete_v1_liquidated_position(self, matcher: Matcher) -> int:
        return self._delete(V1LiquidatedPosition, matcher)

    def query_paginated_v1_liquidated_positions(
        self,
        matcher: Matcher,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> Page[V1LiquidatedPosition]:
        with self._transaction() as session:
            return fetch_page(session, V1LiquidatedPosition, matcher, page=page, per_page=per_page)
