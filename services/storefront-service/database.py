"""Database connection and session management."""
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator
import logging

from config import DATABASE_URL, SEED_DATABASE
from models import Base, Product

logger = logging.getLogger(__name__)


def create_db_engine(url: str) -> Engine:
    """
    Create a SQLAlchemy engine for the given database URL.

    SQLite URLs (tests, local runs) keep SQLite's own pooling; server
    databases get a sized connection pool.

    Args:
        url: Database URL

    Returns:
        Engine instance
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    return create_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_timeout=30,  # Wait max 30 seconds for a connection
        echo_pool=False
    )


engine = create_db_engine(DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def seed_products(db: Session) -> int:
    """
    Insert the sample catalog if no products exist.

    Args:
        db: Database session

    Returns:
        Number of products inserted
    """
    if db.query(Product).count() > 0:
        return 0

    products = [
        Product(name="Laptop", description="14-inch ultrabook", price=Decimal("999.99"), available_count=50),
        Product(name="Smartphone", description="6.1-inch OLED display", price=Decimal("599.99"), available_count=100),
        Product(name="Headphones", description="Noise cancelling, over-ear", price=Decimal("99.99"), available_count=200),
        Product(name="Desk Chair", description="Ergonomic mesh chair", price=Decimal("199.99"), available_count=30),
        Product(name="Monitor", description="27-inch 4K IPS", price=Decimal("299.99"), available_count=75),
        Product(name="Keyboard", description="Mechanical, tenkeyless", price=Decimal("79.99"), available_count=150),
        Product(name="Mouse", description="Wireless optical mouse", price=Decimal("29.99"), available_count=300),
        Product(name="Webcam", description="1080p with microphone", price=Decimal("89.99"), available_count=100),
    ]
    db.add_all(products)
    db.commit()
    return len(products)


def init_db() -> None:
    """Initialize database tables and seed data."""
    Base.metadata.create_all(bind=engine)

    if not SEED_DATABASE:
        return

    db = SessionLocal()
    try:
        seeded = seed_products(db)
        if seeded:
            logger.info("Seeded database with sample products", extra={"count": seeded})
    finally:
        db.close()
