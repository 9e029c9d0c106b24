import uuid

from sqlalchemy.orm import Session

import invoiceme.repositories.customer as customer_repo
from invoiceme.db.models.customer import Customer as CustomerModel
from invoiceme.errors import DuplicateResourceError, NotFoundError


def create_customer(db: Session, name: str, email: str) -> CustomerModel:
    """
    Create a customer that invoices can be billed to.

    - Validates email uniqueness
    """
    if customer_repo.get_customer_by_email(db, email):
        raise DuplicateResourceError("Email already registered")

    return customer_repo.create_customer(db, name=name, email=email)


def get_customer(db: Session, customer_id: uuid.UUID) -> CustomerModel:
    """
    Get a customer by ID.

    Raises:
        NotFoundError: If customer doesn't exist
    """
    customer = customer_repo.get_customer_by_id(db, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    return customer
