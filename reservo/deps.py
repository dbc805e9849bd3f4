from sqlalchemy.orm import Session
from fastapi import Depends, HTTPException
from .db import SessionLocal
from .models import Reservation

def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def reservation_or_404(
    reservation_id: int,
    db: Session = Depends(get_db)
) -> Reservation:
    reservation = db.get(Reservation, reservation_id)
    if not reservation:
        raise HTTPException(404, "Unknown reservation")
    return reservation
