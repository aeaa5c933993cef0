"""
Shared fixtures for all tests.

factory-boy factories live here so both unit/ and integration/ can import them.
记录都是 dataclass，没有数据库，所以用 factory.Factory 而不是 DjangoModelFactory。
"""
import io

import factory
import pytest
from django.test import Client
from openpyxl import Workbook

from doseordering.intake.types import (
    Appointment,
    AppointmentStatus,
    InsuranceProvider,
    VendorPriceList,
)

FDG = 'F18 FDG (Fluorodeoxyglucose)'
NAF = 'F18 NaF (Sodium Fluoride)'
GA68 = 'Ga-68 Dotatate (NetSpot)'


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class AppointmentFactory(factory.Factory):
    class Meta:
        model = Appointment

    identifier = factory.Sequence(lambda n: f'SCH{n:03d}')
    patient_name = 'John Doe'
    date = '2025-11-10'
    scan_time = '09:00 AM'
    substance_name = FDG
    insurance_name = 'Blue Cross'
    status = AppointmentStatus.CONFIRMED


class VendorPriceListFactory(factory.Factory):
    class Meta:
        model = VendorPriceList

    identifier = factory.Sequence(lambda n: f'V{n:03d}')
    vendor_name = factory.Sequence(lambda n: f'Vendor {n}')
    payment_terms = 'Net 30'
    delivery_window = '24-48 hours'
    unit_price_by_substance = factory.LazyFunction(lambda: {FDG: 500})


class InsuranceProviderFactory(factory.Factory):
    class Meta:
        model = InsuranceProvider

    identifier = factory.Sequence(lambda n: f'INS{n:03d}')
    name = 'Blue Cross'
    reimbursement_percentage = 92


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_workbook_bytes(schedules, vendors, insurances=None):
    """
    按页面 "Export to Excel" 的版式生成 .xlsx：
    schedules:  [(id, patient, date, scan_time, isotope, insurance, status), ...]
    vendors:    [(id, name, terms, window, available, pricing_text), ...]
    insurances: [(id, name, rate), ...] 或 None（不生成 Insurance 表）
    """
    wb = Workbook()
    ws = wb.active
    ws.title = 'Schedule'
    ws.append(['Schedule Report'])
    ws.append(['Generated: 11/9/2025, 10:00:00 AM'])
    ws.append([])
    ws.append(['ID', 'Patient Name', 'Date', 'Scan Time', 'Isotope', 'Insurance', 'Status'])
    for row in schedules:
        ws.append(list(row))
    ws.append([])
    ws.append(['Confirmed', sum(1 for row in schedules if row[6] == 'Confirmed')])

    vs = wb.create_sheet('Vendors')
    vs.append(['Vendor Management Report'])
    vs.append(['Generated: 11/9/2025, 10:00:00 AM'])
    vs.append([])
    vs.append(['ID', 'Vendor Name', 'Payment Terms', 'Delivery Window', 'Available Isotopes', 'Pricing'])
    for row in vendors:
        vs.append(list(row))

    if insurances is not None:
        ins = wb.create_sheet('Insurance')
        ins.append(['ID', 'Name', 'Reimbursement %'])
        for row in insurances:
            ins.append(list(row))

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def api_client():
    """Django test client for integration tests."""
    return Client()


@pytest.fixture
def sample_board_payload():
    """Minimal valid dose_board payload for POST /api/orders/recommendations/."""
    return {
        'schedules': [
            {'id': 'SCH001', 'patientName': 'John Doe', 'date': '2025-11-10', 'scanTime': '09:00 AM',
             'isotope': FDG, 'status': 'Confirmed', 'insurance': 'Blue Cross'},
            {'id': 'SCH002', 'patientName': 'Jane Smith', 'date': '2025-11-10', 'scanTime': '10:30 AM',
             'isotope': GA68, 'status': 'Pending Auth', 'insurance': 'Aetna'},
            {'id': 'SCH004', 'patientName': 'Emily Davis', 'date': '2025-11-12', 'scanTime': '11:00 AM',
             'isotope': NAF, 'status': 'Confirmed', 'insurance': 'Cigna'},
            {'id': 'SCH005', 'patientName': 'Michael Brown', 'date': '2025-11-12', 'scanTime': '01:30 PM',
             'isotope': FDG, 'status': 'Confirmed', 'insurance': 'Aetna'},
        ],
        'vendors': [
            {'id': 'V001', 'name': 'Cardinal Health', 'paymentTerms': 'Net 30', 'deliveryWindow': '24-48 hours',
             'pricing': {FDG: 500, NAF: 450}},
            {'id': 'V007', 'name': 'NorthStar Medical Radioisotopes', 'paymentTerms': 'Net 30',
             'deliveryWindow': '24 hours', 'pricing': {FDG: 495, NAF: 445}},
        ],
        'insurances': [
            {'id': 'INS001', 'name': 'Blue Cross', 'reimbursementPercentage': 92},
            {'id': 'INS002', 'name': 'Aetna', 'reimbursementPercentage': 88},
            {'id': 'INS004', 'name': 'Cigna', 'reimbursementPercentage': 90},
        ],
        'dateRange': 'all',
        'selectedDate': '',
        'startDate': '',
        'endDate': '',
    }
