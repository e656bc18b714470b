"""URL routing for the booking domain.

Routes: booking-list, booking-detail, booking-cancel, booking-set-status.
"""

from __future__ import annotations

from rest_framework.routers import DefaultRouter  # type: ignore

from .views import BookingViewSet

router = DefaultRouter()
router.register(r"", BookingViewSet, basename="booking")

urlpatterns = router.urls
