"""Parts catalog read side (stock itself moves through stock_service)."""
from typing import List, Optional

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from garage.models import Part


def list_parts(session: Session, search: Optional[str] = None, low_stock_only: bool = False) -> List[Part]:
    """Parts ordered by name; search matches name or reference."""
    query = session.query(Part)
    if search:
        pattern = f'%{search.strip().lower()}%'
        query = query.filter(or_(
            func.lower(Part.name).like(pattern),
            func.lower(Part.reference).like(pattern)
        ))
    if low_stock_only:
        query = query.filter(Part.low_stock_threshold > 0, Part.stock_qty <= Part.low_stock_threshold)
    return query.order_by(Part.name.asc(), Part.id.asc()).all()
