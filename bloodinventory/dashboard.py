"""
Dashboard statistics
====================
Summary cards and recent activity for the dashboard landing page.
"""

from datetime import date
from typing import Dict, Optional

from .config import LOW_STOCK_ALERT_UNITS
from .repositories import (
    CampaignRepository,
    DonationRepository,
    DonorRepository,
    HospitalRepository,
    PatientRepository,
    StockRepository,
)


def get_dashboard_stats(client, today: Optional[date] = None) -> Dict:
    """Counts for the summary cards plus the low stock list."""
    today = today or date.today()
    stocks = StockRepository(client).list()

    return {
        'total_donors': client.count_records(DonorRepository.table),
        'total_hospitals': client.count_records(HospitalRepository.table),
        'total_patients': client.count_records(PatientRepository.table),
        'upcoming_campaigns': CampaignRepository(client).count_upcoming(today.isoformat()),
        'total_units': sum(stock.available_units for stock in stocks),
        'low_stock_items': [
            stock.to_dict() for stock in stocks if stock.available_units < LOW_STOCK_ALERT_UNITS
        ],
    }


def get_recent_activity(client, limit: int = 10) -> Dict:
    """Latest donations and patients, newest first."""
    donations = client.read_filtered(
        DonationRepository.table,
        select='donation_date,blood_type,donors(first_name,last_name)',
        order='created_at.desc',
        limit=limit,
    )
    patients = client.read_filtered(
        PatientRepository.table,
        select='created_at,blood_type,status,hospitals(hospital_name)',
        order='created_at.desc',
        limit=limit,
    )
    return {'donations': donations or [], 'patients': patients or []}
