from dataclasses import dataclass, field, asdict, fields, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional


def to_decimal(value, default='0') -> Decimal:
    if value is None or value == '':
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _optional_int(value) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _plain(value):
    # valores listos para JSON / sesion (sin Decimal ni tuplas)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class Serializable:
    """Mixin con ida y vuelta a dict plano para guardar en la sesion."""

    _decimal_fields = ()

    def to_dict(self) -> Dict[str, Any]:
        return _plain(asdict(self))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]):
        if data is None:
            return None
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        for name in cls._decimal_fields:
            if name in kwargs and kwargs[name] is not None:
                kwargs[name] = to_decimal(kwargs[name])
        return cls(**kwargs)


# Zona de venta: entrada general, VIP numerada o box
@dataclass(frozen=True)
class Zone(Serializable):
    id: str
    zone_code: str
    zone_name: str
    zone_type: str  # 'general' | 'vip'
    price_usd: Decimal
    total_capacity: int
    available: int
    is_numbered: bool = False
    zone_color: str = '#FD8D6A'
    description: str = ''
    # solo para boxes
    is_box_purchase: bool = False
    box_full_purchase: bool = False
    box_quantity: Optional[int] = None

    _decimal_fields = ('price_usd',)

    def __post_init__(self):
        if self.available > self.total_capacity:
            raise ValueError(f"Zona {self.zone_code}: disponible ({self.available}) mayor que capacidad ({self.total_capacity})")
        if self.is_box_purchase:
            if self.box_quantity is None or not 1 <= self.box_quantity <= 10:
                raise ValueError(f"Box {self.zone_code}: cantidad fuera de rango ({self.box_quantity})")
            if self.box_full_purchase and self.box_quantity != 10:
                raise ValueError(f"Box {self.zone_code}: compra completa exige 10 puestos")

    def with_box_mode(self, full: bool, quantity: int) -> 'Zone':
        return replace(self, box_full_purchase=full, box_quantity=quantity)


@dataclass(frozen=True)
class Seat(Serializable):
    id: str
    seat_number: str
    row: str
    column: int
    status: str  # 'available' | 'sold' | 'reserved' | 'selected'
    price: Decimal
    seat_type: str = 'standard'
    zone_type: str = 'vip'

    _decimal_fields = ('price',)


@dataclass
class Bank(Serializable):
    code: str
    name: str


@dataclass
class Selection(Serializable):
    zone: Optional[Zone] = None
    seats: List[Seat] = field(default_factory=list)
    general_quantity: int = 1

    @classmethod
    def from_dict(cls, data):
        if data is None:
            return cls()
        return cls(
            zone=Zone.from_dict(data.get('zone')),
            seats=[Seat.from_dict(s) for s in data.get('seats') or []],
            general_quantity=int(data.get('general_quantity') or 1),
        )

    def copy(self) -> 'Selection':
        return Selection(zone=self.zone, seats=list(self.seats), general_quantity=self.general_quantity)

    @property
    def quantity(self) -> int:
        if self.zone is None:
            return 0
        if self.zone.is_box_purchase:
            return self.zone.box_quantity or self.general_quantity or 1
        if self.zone.is_numbered:
            return len(self.seats)
        return self.general_quantity


# Datos del comprador + lo que se congela al pasar al paso de pago
@dataclass
class PurchaseForm(Serializable):
    buyer_name: str = ''
    buyer_identification: str = ''
    buyer_email: str = ''
    buyer_phone: str = ''
    payment_method: str = ''
    quantity: int = 1
    ticket_type: str = 'general'
    zone_id: str = ''
    seat_ids: List[str] = field(default_factory=list)
    snapshot: Optional[Selection] = None

    BUYER_FIELDS = ('buyer_name', 'buyer_identification', 'buyer_email', 'buyer_phone')

    @classmethod
    def from_dict(cls, data):
        if data is None:
            return cls()
        form = super().from_dict({k: v for k, v in data.items() if k != 'snapshot'})
        if data.get('snapshot') is not None:
            form.snapshot = Selection.from_dict(data['snapshot'])
        return form


# Pago movil P2C: telefono y banco del pagador
@dataclass
class P2CData(Serializable):
    client_phone: str = ''
    client_bank_code: str = ''


# Pagos manuales (transferencia, zelle, paypal)
@dataclass
class PaymentData(Serializable):
    bank_code: str = ''
    reference: str = ''
    email_from: str = ''
    paypal_email: str = ''


@dataclass
class ProofFile:
    """Comprobante adjunto; vive solo durante el envio, nunca en la sesion."""
    filename: str
    content: bytes
    mimetype: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class TokenInfo(Serializable):
    valid: bool = False
    requires_captcha: bool = False
    captcha_site_key: str = ''
    allowed_origins: List[str] = field(default_factory=list)
    allowed_payment_methods: List[str] = field(default_factory=list)
    max_tickets_per_purchase: Optional[int] = None
    usage_count: Optional[int] = None
    max_uses: Optional[int] = None

    @classmethod
    def from_response(cls, data: Any) -> 'TokenInfo':
        # un cuerpo que no es objeto se trata como token invalido
        if not isinstance(data, dict):
            data = {'valid': False}
        info = cls.from_dict(data)
        info.valid = bool(info.valid)
        info.requires_captcha = bool(info.requires_captcha)
        info.captcha_site_key = info.captcha_site_key or ''
        info.allowed_origins = list(info.allowed_origins or [])
        info.allowed_payment_methods = list(info.allowed_payment_methods or [])
        info.max_tickets_per_purchase = _optional_int(info.max_tickets_per_purchase)
        info.usage_count = _optional_int(info.usage_count)
        info.max_uses = _optional_int(info.max_uses)
        return info

    @property
    def usage_exhausted(self) -> bool:
        if self.max_uses is None or self.usage_count is None:
            return False
        return self.usage_count >= self.max_uses


# Datos del comercio devueltos al iniciar el P2C
@dataclass
class CommerceDetails(Serializable):
    commerce_phone: Optional[str] = None
    commerce_bank_code: Optional[str] = None
    commerce_bank_name: Optional[str] = None
    commerce_rif: Optional[str] = None
    invoice_number: Optional[str] = None
    control_number: Optional[str] = None
    amount: Optional[Any] = None


@dataclass
class Transaction(Serializable):
    transaction_id: str
    amount_usd: Decimal
    amount_bs: str
    exchange_rate: Optional[Decimal]
    commerce: CommerceDetails = field(default_factory=CommerceDetails)
    reference: str = ''

    _decimal_fields = ('amount_usd', 'exchange_rate')

    @classmethod
    def from_dict(cls, data):
        if data is None:
            return None
        tx = super().from_dict({k: v for k, v in data.items() if k != 'commerce'})
        tx.commerce = CommerceDetails.from_dict(data.get('commerce') or {})
        return tx


# Voucher bancario: se pasa tal cual, nunca se recalcula
@dataclass
class VoucherData(Serializable):
    authId: Optional[str] = None
    terminal: Optional[str] = None
    lote: Optional[str] = None
    seqnum: Optional[str] = None
    voucher: Optional[Any] = None
    control: Optional[str] = None
    reference: Optional[str] = None


@dataclass
class TicketRecord(Serializable):
    id: str
    ticket_number: str
    buyer_name: str
    buyer_email: str
    buyer_phone: str
    buyer_identification: str
    payment_method: str
    payment_status: str  # 'pendiente' | 'confirmado' | 'rechazado'
    ticket_status: str
    zone_name: str
    ticket_price: Decimal
    quantity: int
    total_price: Decimal
    created_at: str
    email_sent: bool = True
    is_box_purchase: bool = False
    box_full_purchase: bool = False
    box_code: Optional[str] = None
    voucher_data: Optional[Any] = None
