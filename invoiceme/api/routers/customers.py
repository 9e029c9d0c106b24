import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from invoiceme.api.deps import get_db
from invoiceme.schemas.customer import Customer, CustomerCreate
from invoiceme.services.customer import create_customer, get_customer

router = APIRouter(prefix="/customers", tags=["customers"])


@router.post("", response_model=Customer, status_code=status.HTTP_201_CREATED)
def create_new_customer(customer_data: CustomerCreate, db: Session = Depends(get_db)):
    """Create a customer that invoices can be issued to."""
    customer = create_customer(db, name=customer_data.name, email=customer_data.email)
    return Customer.model_validate(customer)


@router.get("/{customer_id}", response_model=Customer)
def get_customer_by_id(customer_id: uuid.UUID, db: Session = Depends(get_db)):
    """Get a customer by ID."""
    return Customer.model_validate(get_customer(db, customer_id))
