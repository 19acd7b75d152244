"""
Bookable service catalog.

Each row is one bookable service of a salon. Customers may book several
services in one appointment; their durations are chained back to back, so the
appointment length is the plain sum of duration_minutes.

Prices are stored in minor units (cents) to keep money arithmetic exact.
"""
from django.core.validators import MinValueValidator
from django.db import models
from apps.core.models import BaseModel
from apps.salons.models import Salon


class BookableService(BaseModel):
    salon = models.ForeignKey(Salon, on_delete=models.CASCADE, related_name='services')
    name = models.CharField(max_length=150)
    description = models.TextField(blank=True)
    duration_minutes = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text='Time the service occupies the staff member, in minutes',
    )
    price_cents = models.PositiveIntegerField(help_text='Price in minor currency units')
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        verbose_name = 'Service'
        verbose_name_plural = 'Services'
        ordering = ['name', 'duration_minutes']

    def __str__(self):
        return f"{self.name} ({self.duration_minutes} min)"
