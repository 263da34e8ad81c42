# models.py
import sqlalchemy
from ict_booking.database import metadata

# 'bookings' table, one row per booking record
bookings = sqlalchemy.Table(
    "bookings",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.String(32), primary_key=True),
    sqlalchemy.Column("student_name", sqlalchemy.String),
    sqlalchemy.Column("class_name", sqlalchemy.String),
    sqlalchemy.Column("location", sqlalchemy.String),
    sqlalchemy.Column("purpose", sqlalchemy.Text),
    sqlalchemy.Column("date", sqlalchemy.String(10), index=True),
    sqlalchemy.Column("day", sqlalchemy.String(16)),
    sqlalchemy.Column("start_time", sqlalchemy.String(5)),
    sqlalchemy.Column("end_time", sqlalchemy.String(5)),
    sqlalchemy.Column("equipment_id", sqlalchemy.String, index=True),
    sqlalchemy.Column("quantity", sqlalchemy.Integer),
    sqlalchemy.Column("asset_codes", sqlalchemy.JSON),
    sqlalchemy.Column("status", sqlalchemy.String(16), index=True),
    # epoch milliseconds
    sqlalchemy.Column("timestamp", sqlalchemy.BigInteger),
    sqlalchemy.Column("approved_by", sqlalchemy.String, nullable=True),
    sqlalchemy.Column("returned_at", sqlalchemy.String, nullable=True),
)
