"""
Customer model — the person an appointment is booked for. Customers do not
need an account; the normalised phone number is the identity key.

Phone normalisation makes lookups independent of how the number was typed:
  +41 79 123 45 67   →  +41791234567
  0041 79 123 45 67  →  +41791234567
  (079) 123-45-67    →  0791234567
"""
import re
from django.db import models
from apps.core.models import UUIDModel, TimestampedModel


def normalize_phone(raw: str) -> str:
    """
    Normalise a phone number to digits with an optional leading '+'.

      1. Strip everything except digits and a leading '+'
      2. Rewrite an international '00' prefix as '+'
      3. Validate 7–15 digits (E.164 upper bound)

    Raises ValueError if the number cannot be normalised.
    """
    raw = (raw or '').strip()
    plus = raw.startswith('+')
    digits = re.sub(r'\D', '', raw)

    if not plus and digits.startswith('00'):
        digits = digits[2:]
        plus = True

    if not 7 <= len(digits) <= 15:
        raise ValueError(
            f"Cannot normalise phone number '{raw}' — "
            f"expected 7 to 15 digits, got {len(digits)}."
        )
    return f"+{digits}" if plus else digits


class Customer(UUIDModel, TimestampedModel):
    name = models.CharField(max_length=120)
    phone = models.CharField(max_length=20, blank=True, db_index=True)
    email = models.EmailField(blank=True, db_index=True)

    class Meta:
        verbose_name = 'Customer'
        verbose_name_plural = 'Customers'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.phone or self.email})"

    @classmethod
    def get_or_create_for_contact(cls, name, phone='', email=''):
        """
        Canonical customer lookup: by normalised phone when given, else by
        e-mail. Keeps the most recent name and contact details.

        Raises ValueError if the phone cannot be normalised or if neither
        phone nor e-mail is provided.
        """
        email = (email or '').strip().lower()
        if phone:
            phone = normalize_phone(phone)
            lookup = {'phone': phone}
        elif email:
            lookup = {'email': email}
        else:
            raise ValueError('A phone number or an e-mail address is required.')

        customer = cls.objects.filter(**lookup).order_by('-created_at').first()
        if customer is None:
            return cls.objects.create(name=name, phone=phone, email=email), True

        update_fields = []
        for field, value in (('name', name), ('email', email), ('phone', phone)):
            if value and getattr(customer, field) != value:
                setattr(customer, field, value)
                update_fields.append(field)
        if update_fields:
            customer.save(update_fields=update_fields + ['updated_at'])
        return customer, False
