import uuid

from sqlalchemy.orm import Session

from invoiceme.db.models.customer import Customer as CustomerModel


def get_customer_by_id(db: Session, customer_id: uuid.UUID) -> CustomerModel | None:
    """Get a customer by ID."""
    return db.query(CustomerModel).filter(CustomerModel.id == customer_id).first()


def get_customer_by_email(db: Session, email: str) -> CustomerModel | None:
    """Get a customer by email."""
    return db.query(CustomerModel).filter(CustomerModel.email == email).first()


def create_customer(db: Session, name: str, email: str) -> CustomerModel:
    """Create a new customer in the database. Pure data access - no business logic."""
    db_customer = CustomerModel(name=name, email=email)
    db.add(db_customer)
    db.commit()
    db.refresh(db_customer)
    return db_customer


class CustomerDirectory:
    """Answers whether a customer exists; used when creating invoices."""

    def __init__(self, db: Session):
        self.db = db

    def exists(self, customer_id: uuid.UUID) -> bool:
        return get_customer_by_id(self.db, customer_id) is not None
