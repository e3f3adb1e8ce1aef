"""
Blood inventory unit accounting and donor eligibility
"""

from .database import DatabaseConnection
from .eligibility import EligibilityEvaluator, evaluate_eligibility
from .errors import (
    InsufficientStock,
    InvalidInput,
    InventoryError,
    NotFound,
    StaleWriteError,
    TransientIOError,
)
from .inventory import InventoryLedger
from .models import Availability, BloodStock, DonorRecord
from .repositories import (
    CampaignRepository,
    DonationRepository,
    DonorRepository,
    HospitalRepository,
    PatientRepository,
    StockRepository,
)

__version__ = '1.0.0'
