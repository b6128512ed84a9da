from .admin_forms import AdminLoginForm, DonationOptionForm, EventForm
from .public_forms import (
    CommunitySignupForm,
    ContactForm,
    CustomerInfoForm,
    DonationForm,
    RegistrationForm,
)

__all__ = [
    "AdminLoginForm",
    "CommunitySignupForm",
    "ContactForm",
    "CustomerInfoForm",
    "DonationForm",
    "DonationOptionForm",
    "EventForm",
    "RegistrationForm",
]
