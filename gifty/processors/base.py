from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional, List

from gifty.helpers import is_valid_email


@dataclass(frozen=True)
class PaymentSession:
    """Processor-side checkout session. Read-only for this service."""

    id: str
    status: Optional[str] = None
    payment_status: Optional[str] = None
    payment_intent_id: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None
    customer_details_email: Optional[str] = None
    customer_email: Optional[str] = None
    customer_object_email: Optional[str] = None
    receipt_email: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return self.status == "complete"

    def candidate_emails(self) -> List[str]:
        """Non-empty emails in delivery order, de-duplicated case-insensitively."""
        ordered = [
            self.metadata.get("recipient_email"),
            self.customer_details_email,
            self.customer_email,
            self.customer_object_email,
            self.receipt_email,
            self.metadata.get("buyer_email"),
        ]
        seen = set()
        emails = []
        for email in ordered:
            if not email or not email.strip():
                continue
            email = email.strip()
            if email.lower() in seen:
                continue
            seen.add(email.lower())
            emails.append(email)
        return emails

    def deliverable_email(self) -> Optional[str]:
        for email in self.candidate_emails():
            if is_valid_email(email):
                return email
        return None


class PaymentProcessor(ABC):
    """Abstract base for payment processor session readers."""

    @abstractmethod
    async def retrieve_session(self, session_id: str) -> Optional[PaymentSession]:
        """
        Fetch a checkout session by id.
        Returns None when the processor does not know the session.
        Any other processor failure is raised.
        """
        pass

    @property
    @abstractmethod
    def processor_name(self) -> str:
        pass
