import re
from decimal import Decimal

# Pasos del wizard
PERSONAL_DATA = 1
ZONE_SELECTION = 2
PAYMENT = 3
P2C_CONFIRM = 4

# Precios por defecto (USD); se pueden sobreescribir via config
GENERAL_PRICE_USD = Decimal('35')
BOX_SEAT_PRICE_USD = Decimal('75')
BOX_FULL_PRICE_USD = Decimal('750')
BOX_CAPACITY = 10
TOTAL_BOXES = 30

PURCHASE_LIMITS = {
    'max_general_tickets': 10,
    'max_box_tickets': BOX_CAPACITY,
    'max_vip_seats': 5,
    'min_tickets': 1,
}

GENERAL_ZONE = {
    'id': 'preferencial',
    'zone_code': 'PREF',
    'zone_name': 'Zona Preferencial',
    'total_capacity': 3000,
    'available': 2500,
    'description': 'Entrada general - Área de pie con acceso directo al escenario',
}

VIP_SEAT_CONFIG = {
    'rows': ['A', 'B', 'C', 'D', 'E', 'F'],
    'seats_per_row': 5,
    'sold_seats': ['VA01', 'VA03', 'VB02', 'VB04', 'VC01', 'VC05', 'VD03', 'VE02', 'VE04', 'VF01'],
}

DEFAULT_EXCHANGE_RATE = Decimal('36.50')

DEFAULT_BANKS = [
    {'code': '0102', 'name': 'Banco de Venezuela'},
    {'code': '0108', 'name': 'Banco Provincial'},
    {'code': '0114', 'name': 'Bancaribe'},
    {'code': '0128', 'name': 'Banco Caroní'},
]

PAGO_MOVIL = 'pago_movil'
TRANSFERENCIA = 'transferencia_nacional'
ZELLE = 'zelle'
PAYPAL = 'paypal'

PAYMENT_METHODS = [
    {'value': PAGO_MOVIL, 'label': 'Pago Móvil P2C', 'instant': True},
    {'value': TRANSFERENCIA, 'label': 'Transferencia Nacional', 'instant': False},
    {'value': ZELLE, 'label': 'Zelle', 'instant': False},
    {'value': PAYPAL, 'label': 'PayPal', 'instant': False},
]

# subtipo del pago manual segun el metodo elegido
MANUAL_SUBTYPES = {
    TRANSFERENCIA: 'transfer',
    ZELLE: 'zelle',
    PAYPAL: 'paypal',
}

API_ENDPOINTS = {
    'token_info': '/api/tickets/payment/pago-movil/public/token-info',
    'inventory': '/api/tickets/inventory',
    'boxes_availability': '/api/boxes/availability',
    'banks': '/api/payment-gateway/banks',
    'exchange_rate': '/api/exchange-rates/current',
    'initiate_p2c': '/api/tickets/payment/pago-movil/iframe/initiate',
    'confirm_p2c': '/api/tickets/payment/pago-movil/iframe/confirm',
    'cancel_p2c': '/api/tickets/payment/pago-movil/iframe/cancel',
    'manual_payment': '/api/tickets/manual/iframe-payment',
}

MESSAGES = {
    'token_required': 'Este formulario requiere un token de acceso válido',
    'token_invalid': 'Token inválido o expirado. Por favor, recargue la página.',
    'token_origin': 'Este formulario no está autorizado para este sitio',
    'token_exhausted': 'El token de acceso alcanzó su límite de uso',
    'connection_error': 'Error de conexión. Por favor, intente nuevamente.',
    'processing_error': 'Error al procesar su solicitud. Por favor, intente nuevamente.',
    'confirm_error': 'Error al confirmar pago',
    'max_tickets': 'Máximo {max} entradas por compra',
    'max_seats': 'Máximo {max} asientos por compra',
    'seat_unavailable': 'Este asiento no está disponible',
    'box_unavailable': 'Este box no está disponible',
    'box_incomplete': 'Este box no tiene los 10 puestos disponibles',
    'payment_initiated': 'Proceso de pago iniciado. Complete la transferencia.',
    'payment_confirmed': '¡Pago confirmado! Sus entradas han sido enviadas por email.',
    'verification_pending': 'Su pago está siendo verificado. Recibirá un email en 2-4 horas.',
    'reference_required': 'Ingrese la referencia de la transferencia',
    'already_submitting': 'Ya hay una solicitud en proceso',
}

VALIDATION_RULES = {
    'buyer_name': {'min_length': 3, 'message': 'Nombre completo válido (solo letras, mínimo 3 caracteres)'},
    'buyer_identification': {'min_length': 6, 'message': 'Cédula con formato: V-12345678 o E-12345678'},
    'buyer_email': {'pattern': re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$'), 'message': 'Email válido es requerido para enviar sus entradas'},
    'buyer_phone': {'min_length': 11, 'message': 'Teléfono móvil venezolano (ej: 04141234567)'},
    'client_phone': {'pattern': re.compile(r'^(0412|0414|0416|0424|0426)\d{7}$'), 'message': 'Teléfono del pagador móvil (ej: 04141234567)'},
    'payment_reference': {'pattern': re.compile(r'^[0-9A-Z]{4,20}$', re.IGNORECASE), 'message': 'Referencia de pago (solo números y letras)'},
}

PROOF_MAX_SIZE_MB = 5
PROOF_ALLOWED_TYPES = ('image/jpeg', 'image/png', 'image/jpg', 'application/pdf')

CAPTCHA_SCRIPT_URL = 'https://js.hcaptcha.com/1/api.js'
LOW_AVAILABILITY_THRESHOLD = 20
