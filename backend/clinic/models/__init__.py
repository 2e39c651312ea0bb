from .tenancy import Tenant, Location, Staff, Pet
from .scheduling import (
    BusinessHours, SpecialHours, Appointment, AppointmentRequest,
    AppointmentStatus, RequestStatus,
)
from .cash import CashDrawer, CashShift, CashTransaction, DrawerStatus, ShiftStatus, TransactionType
from .sales import Sale, SalePayment, SaleStatus, PaymentMethod

__all__ = [
    'Tenant', 'Location', 'Staff', 'Pet',
    'BusinessHours', 'SpecialHours', 'Appointment', 'AppointmentRequest',
    'AppointmentStatus', 'RequestStatus',
    'CashDrawer', 'CashShift', 'CashTransaction', 'DrawerStatus', 'ShiftStatus', 'TransactionType',
    'Sale', 'SalePayment', 'SaleStatus', 'PaymentMethod',
]
