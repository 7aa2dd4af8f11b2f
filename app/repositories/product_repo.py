import uuid

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.product import Product


class ProductRepository:
    """
    Catalog store used by the commerce core.

    - Pure DB operations, no commits.
    - Counter changes are issued as single UPDATE statements
      (stock = stock + :delta) so concurrent requests never lose writes.
    """

    def get_many(
        self,
        session: Session,
        product_ids: list[uuid.UUID],
        only_active: bool = True,
    ) -> dict[uuid.UUID, Product]:
        if not product_ids:
            return {}
        stmt = select(Product).where(Product.id.in_(product_ids))
        if only_active:
            stmt = stmt.where(Product.is_active == True)  # noqa: E712
        stmt = stmt.execution_options(populate_existing=True)
        return {p.id: p for p in session.exec(stmt).all()}

    def reserve_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        Take `quantity` units off the shelf and count them as sold, only if
        enough stock remains. Returns False when the guard fails.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= quantity)
            .values(
                stock_quantity=Product.stock_quantity - quantity,
                sold_count=Product.sold_count + quantity,
            )
        )
        result = session.exec(stmt)
        return result.rowcount == 1

    def adjust_stock(self, session: Session, product_id: uuid.UUID, delta: int) -> None:
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock_quantity=Product.stock_quantity + delta)
        )
        session.exec(stmt)

    def adjust_sold_count(
        self,
        session: Session,
        product_id: uuid.UUID,
        delta: int,
    ) -> None:
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(sold_count=Product.sold_count + delta)
        )
        session.exec(stmt)
