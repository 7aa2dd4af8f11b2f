import uuid
from typing import Any

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.order import Order, OrderItem, OrderStatus, OrderStatusHistory


class OrderRepository:
    """
    Data access layer for orders, order_items and order_status_history.

    NOTE:
      - No commits here; order creation and transitions are multi-step
        transactions. The service is responsible for session.commit().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
        status: OrderStatus | None = None,
    ) -> list[Order]:
        stmt = select(Order).where(Order.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status: OrderStatus | None = None,
    ) -> list[Order]:
        stmt = select(Order)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def get_by_id(
        self,
        session: Session,
        order_id: uuid.UUID,
        for_update: bool = False,
    ) -> Order | None:
        stmt = select(Order).where(Order.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        # Always re-read: a transition must never act on a cached status
        stmt = stmt.execution_options(populate_existing=True)
        return session.exec(stmt).first()

    def get_by_number(self, session: Session, order_number: str) -> Order | None:
        stmt = select(Order).where(Order.order_number == order_number)
        return session.exec(stmt).first()

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def compare_and_set_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        expected: OrderStatus,
        values: dict[str, Any],
    ) -> bool:
        """
        UPDATE orders SET ... WHERE id = :id AND status = :expected.

        `values` must include the new status. Returns False when the row
        no longer carries `expected` (another request moved it first).
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(**values)
        )
        result = session.exec(stmt)
        return result.rowcount == 1

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.position)
        )
        return list(session.exec(stmt).all())

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items

    # ---- Status history (append-only) ----

    def add_history(
        self,
        session: Session,
        entry: OrderStatusHistory,
    ) -> OrderStatusHistory:
        session.add(entry)
        session.flush()
        return entry

    def list_history(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderStatusHistory]:
        stmt = (
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.created_at)
        )
        return list(session.exec(stmt).all())
