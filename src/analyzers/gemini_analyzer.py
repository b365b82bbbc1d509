"""
gemini_analyzer.py - Gemini AI collaborators (v1.2)

Core features:
1. VehiclePanelEstimator: per-panel wrap measurements for make/model/year
2. PriceSuggester: conservative / moderate / aggressive sale prices
3. SalesPitchGenerator: WhatsApp-ready quote message

The pricing core never depends on these answers being right or available:
- the estimator falls back to per-class tables (small/sedan/suv/pickup)
- the price suggester falls back to 2x / 3x / 4x of the base cost
- the sales pitch falls back to a fixed template and never raises
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import google.generativeai as genai
from pydantic import BaseModel, Field, field_validator

from config.settings import get_settings
from ..core.error_handler import error_handler
from ..core.exceptions import EstimationError, GeminiAPIError
from ..core.logging import setup_logger
from ..domain.calculators import PanelDimensions
from ..domain.models import Customer, LaserMode, QuoteItem, StickerLabel, LaserLabel, WrapLabel

logger = setup_logger(__name__)


# ============================================================
# Response models (Gemini output validation)
# ============================================================

class PanelSizeModel(BaseModel):
    """One panel, meters"""
    w: float = Field(default=0.0, ge=0)
    h: float = Field(default=0.0, ge=0)

    @field_validator("w", "h", mode="before")
    @classmethod
    def empty_to_zero(cls, v):
        return 0.0 if v in (None, "") else v


class PriceSuggestionModel(BaseModel):
    """Price suggestion (Pydantic)"""
    conservative: float = Field(..., ge=0)
    moderate: float = Field(..., ge=0)
    aggressive: float = Field(..., ge=0)
    reasoning: str = Field(default="")


@dataclass
class PriceSuggestion:
    conservative: float
    moderate: float
    aggressive: float
    reasoning: str
    from_fallback: bool = False


# ============================================================
# Vehicle fallback tables
# ============================================================

VEHICLE_PANELS = (
    "capo",
    "paralamas_dianteiros",
    "portas_dianteiras",
    "portas_traseiras",
    "teto",
    "colunas",
    "porta_malas",
    "traseira",
    "parachoque_dianteiro",
    "parachoque_traseiro",
    "vidro_traseiro_microperfurado",
    "laterais",
)


def _table(capo, teto, porta_malas, paralamas, portas_d, portas_t, laterais, parachoque):
    return {
        "capo": {"w": capo[0], "h": capo[1]},
        "teto": {"w": teto[0], "h": teto[1]},
        "porta_malas": {"w": porta_malas[0], "h": porta_malas[1]},
        "paralamas_dianteiros": {"w": paralamas[0], "h": paralamas[1]},
        "portas_dianteiras": {"w": portas_d[0], "h": portas_d[1]},
        "portas_traseiras": {"w": portas_t[0], "h": portas_t[1]},
        "laterais": {"w": laterais[0], "h": laterais[1]},
        "parachoque_dianteiro": {"w": parachoque[0], "h": parachoque[1]},
        "parachoque_traseiro": {"w": parachoque[0], "h": parachoque[1]},
    }


FALLBACK_MEASUREMENTS: Dict[str, Dict[str, Dict[str, float]]] = {
    "small": _table((1.2, 0.9), (1.1, 1.4), (1.1, 0.6), (0.8, 0.6), (0.9, 0.6), (0, 0), (1.5, 0.6), (1.6, 0.5)),
    "sedan": _table((1.4, 1.0), (1.2, 1.5), (1.2, 0.6), (0.9, 0.7), (1.0, 0.7), (0.9, 0.7), (2.0, 0.7), (1.7, 0.5)),
    "suv": _table((1.5, 1.1), (1.3, 2.0), (1.3, 0.8), (1.0, 0.8), (1.1, 0.8), (1.0, 0.8), (2.5, 0.8), (1.8, 0.6)),
    "pickup": _table((1.6, 1.2), (1.4, 1.4), (1.5, 0.6), (1.0, 0.8), (1.1, 0.8), (1.0, 0.8), (2.8, 0.8), (1.9, 0.6)),
}

# Checked in order; first match wins
VEHICLE_CLASS_KEYWORDS = (
    ("pickup", ("saveiro", "strada", "toro", "ranger", "hilux", "s10")),
    ("suv", ("suv", "jeep", "compass", "creta", "hrv")),
    ("sedan", ("sedan", "corolla", "civic", "virtus")),
)


def infer_vehicle_class(model: str) -> str:
    lower = (model or "").lower()
    for vehicle_class, keywords in VEHICLE_CLASS_KEYWORDS:
        if any(k in lower for k in keywords):
            return vehicle_class
    return "small"


def fallback_measurements(model: str) -> Dict[str, PanelDimensions]:
    table = FALLBACK_MEASUREMENTS[infer_vehicle_class(model)]
    return {name: PanelDimensions(**dims) for name, dims in table.items()}


def parse_panels(data: Dict[str, Any]) -> Dict[str, PanelDimensions]:
    """Validate a {panel: {w, h}} mapping; unknown keys are kept"""
    if not isinstance(data, dict) or not data:
        raise ValueError("measurements must be a non-empty object")
    panels = {}
    for name, dims in data.items():
        size = PanelSizeModel.model_validate(dims)
        panels[name] = PanelDimensions(w=size.w, h=size.h)
    return panels


# ============================================================
# Base client
# ============================================================

class GeminiClient:
    """google-generativeai wrapper shared by every collaborator"""

    SYSTEM_PROMPT = (
        "Você é um assistente técnico e comercial de uma gráfica de comunicação visual "
        "e impressão digital. Responda sempre em português do Brasil."
    )

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        """
        Args:
            api_key: Gemini API key (env GEMINI_API_KEY)
            model_name: model id (env GEMINI_MODEL)
        """
        settings = get_settings()
        self.api_key = api_key or settings.gemini_api_key
        self.model_name = model_name or settings.gemini_model
        self.temperature = settings.gemini_temperature
        self.model = None
        self._initialized = False

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def initialize(self) -> bool:
        if self._initialized:
            return True
        if not self.api_key:
            return False
        genai.configure(api_key=self.api_key)
        self.model = genai.GenerativeModel(self.model_name, system_instruction=self.SYSTEM_PROMPT)
        self._initialized = True
        return True

    def _classify_error(self, error: Exception) -> GeminiAPIError:
        msg = str(error).lower()
        if "quota" in msg or "429" in msg or "rate" in msg:
            status = 429
        elif "api_key" in msg or "api key" in msg or "401" in msg or "403" in msg:
            status = 401
        elif "503" in msg or "unavailable" in msg or "timeout" in msg or "timed out" in msg:
            status = 503
        else:
            status = None
        return GeminiAPIError(
            f"Gemini request failed: {error}",
            model=self.model_name,
            status_code=status,
            cause=error,
        )

    def _generate(self, prompt: str) -> str:
        """Raw response text

        Raises:
            GeminiAPIError: not configured, request failed or empty answer
        """
        if not self.initialize():
            raise GeminiAPIError("GEMINI_API_KEY is not set", model=self.model_name, status_code=401)
        try:
            response = self.model.generate_content(
                prompt,
                generation_config={"temperature": self.temperature},
            )
            text = response.text
        except Exception as e:
            raise self._classify_error(e) from e
        if not text or not text.strip():
            raise GeminiAPIError("Empty response", model=self.model_name)
        return text

    @staticmethod
    def _parse_json_response(response_text: str) -> Any:
        """Strip ``` fences and parse JSON (ValueError on bad JSON)"""
        json_str = response_text.strip()
        json_str = re.sub(r"^```(?:json)?\s*", "", json_str)
        json_str = re.sub(r"\s*```$", "", json_str)
        return json.loads(json_str)


# ============================================================
# Vehicle panel estimator
# ============================================================

class VehiclePanelEstimator(GeminiClient):
    """Panel measurements for a vehicle

    Lookup order: measurement cache -> Gemini -> fallback table.
    With use_fallback=False a failed estimate returns None, which callers
    surface as a retry prompt.
    """

    PROMPT = """Aja como um orçamentista técnico de uma oficina de envelopamento.
Estime as dimensões de largura e altura (em metros) de cada peça do veículo: {make} {model} {year}.

REGRAS:
1. Seja realista: um capô de Saveiro 93 tem aprox. 1.35m x 0.95m. Nunca retorne áreas absurdas.
2. Sangria: adicione exatamente 0.05m (5cm) de sobra em cada lado para aplicação.
3. Veículo 2 portas: 'portas_traseiras' deve ser {{"w": 0, "h": 0}}.
4. Retorne um JSON com as chaves: {keys}.
5. Cada chave deve conter um objeto {{"w": número, "h": número}}.

Retorne APENAS o JSON, sem markdown."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        store: Any = None,
        use_fallback: bool = True,
    ):
        super().__init__(api_key, model_name)
        self.store = store
        self.use_fallback = use_fallback

    @error_handler(fallback_value=None, log_level="warning")
    def _read_cache(self, make: str, model: str, year: str) -> Optional[Dict[str, PanelDimensions]]:
        if self.store is None:
            return None
        cached = self.store.get_vehicle_measurements(make, model, year)
        return parse_panels(cached) if cached else None

    @error_handler(fallback_value=False, log_level="warning")
    def _write_cache(self, make: str, model: str, year: str, panels: Dict[str, PanelDimensions]) -> bool:
        if self.store is None:
            return False
        dimensions = {name: {"w": p.w, "h": p.h} for name, p in panels.items()}
        self.store.save_vehicle_measurements(make, model, year, dimensions)
        return True

    def _ask_gemini(self, make: str, model: str, year: str) -> Dict[str, PanelDimensions]:
        prompt = self.PROMPT.format(make=make, model=model, year=year, keys=", ".join(VEHICLE_PANELS))
        text = self._generate(prompt)
        try:
            return parse_panels(self._parse_json_response(text))
        except ValueError as e:
            raise GeminiAPIError(f"Unusable measurements: {e}", model=self.model_name, cause=e) from e

    def estimate(self, make: str, model: str, year: str = "") -> Optional[Dict[str, PanelDimensions]]:
        """Measurements by panel name, or None when nothing could be estimated"""
        vehicle = f"{make} {model} {year}".strip()

        cached = self._read_cache(make, model, year)
        if cached:
            logger.info(f"Vehicle {vehicle} found in cache")
            return cached

        if self.is_configured:
            try:
                panels = self._ask_gemini(make, model, year)
            except GeminiAPIError as e:
                logger.warning(f"Estimate for {vehicle} failed: {e}")
            else:
                self._write_cache(make, model, year, panels)
                return panels
        else:
            logger.warning("GEMINI_API_KEY not set; skipping AI estimate")

        if self.use_fallback:
            vehicle_class = infer_vehicle_class(model)
            logger.info(f"Using {vehicle_class} fallback table for {vehicle}")
            return fallback_measurements(model)
        return None

    def estimate_or_raise(self, make: str, model: str, year: str = "") -> Dict[str, PanelDimensions]:
        panels = self.estimate(make, model, year)
        if not panels:
            vehicle = f"{make} {model} {year}".strip()
            raise EstimationError(f"Could not estimate measurements for {vehicle}", vehicle=vehicle)
        return panels


# ============================================================
# Price suggester
# ============================================================

class PriceSuggester(GeminiClient):
    """Three-tier sale price suggestion from a base cost"""

    PROMPT = """Atue como um especialista em precificação para {market}.
Analise o produto: "{name}" (Categoria: {category}).
Custo base de produção (material + hora/máquina): R$ {cost:.2f}.

Gere 3 sugestões de preço de venda:
1. Conservador (margem baixa / giro rápido)
2. Moderado (margem ideal de mercado)
3. Agressivo (alta percepção de valor / premium)

Retorne APENAS um JSON neste formato:
{{"conservative": 0.00, "moderate": 0.00, "aggressive": 0.00, "reasoning": "uma frase"}}"""

    FALLBACK_MULTIPLIERS = (2, 3, 4)
    FALLBACK_REASONING = "Cálculo de fallback (2x, 3x, 4x) devido a erro na IA."

    def fallback(self, base_cost: float) -> PriceSuggestion:
        low, mid, high = self.FALLBACK_MULTIPLIERS
        return PriceSuggestion(
            conservative=base_cost * low,
            moderate=base_cost * mid,
            aggressive=base_cost * high,
            reasoning=self.FALLBACK_REASONING,
            from_fallback=True,
        )

    def suggest(
        self,
        product_name: str,
        category: str,
        base_cost: float,
        market_context: str = "comunicação visual e impressão digital",
    ) -> PriceSuggestion:
        prompt = self.PROMPT.format(market=market_context, name=product_name, category=category, cost=base_cost)
        try:
            data = self._parse_json_response(self._generate(prompt))
            validated = PriceSuggestionModel.model_validate(data)
        except (GeminiAPIError, ValueError) as e:
            logger.warning(f"Price suggestion for {product_name} failed: {e}")
            return self.fallback(base_cost)
        return PriceSuggestion(
            conservative=validated.conservative,
            moderate=validated.moderate,
            aggressive=validated.aggressive,
            reasoning=validated.reasoning,
        )


# ============================================================
# Sales pitch
# ============================================================

def _num(value: float) -> str:
    """12.0 -> '12', 0.5 -> '0.5'"""
    return f"{value:g}"


def item_details(item: QuoteItem) -> str:
    """Suffix shown after the product name"""
    label = item.label_data
    if isinstance(label, StickerLabel):
        count = label.total_labels or _num(item.quantity)
        return f" ({count} etiquetas de {_num(label.single_width)}x{_num(label.single_height)}cm)"
    if isinstance(label, LaserLabel):
        if label.mode == LaserMode.PROMOTIONAL:
            return f" [Brinde: {label.promo_product}]"
        return f" [Material: {label.material} {label.thickness}]"
    if isinstance(label, WrapLabel):
        return f" [Veículo: {label.vehicle}]"
    if item.width and item.height and item.height != 1:
        return f" [{_num(item.width)}x{_num(item.height)}m]"
    if item.width and (not item.height or item.height == 1):
        return f" [Área Total: {item.width:.2f}m²]"
    return ""


def format_item_line(item: QuoteItem) -> str:
    requirements = ""
    if item.requirements.get("auto_vehicle"):
        requirements += f"\n   🚗 Veículo: {item.requirements['auto_vehicle']}"
    if item.requirements.get("auto_breakdown"):
        requirements += f"\n   Peças: {item.requirements['auto_breakdown']}"
    return (
        f"✅ *{item.product_name}{item_details(item)}*\n"
        f"   Qtd: {_num(item.quantity)} | Sub: *R$ {item.subtotal:.2f}*{requirements}"
    )


class SalesPitchGenerator(GeminiClient):
    """WhatsApp message for a quote; never raises"""

    ERROR_TEXT = "Erro ao gerar texto."
    PROMO_HEADER = "🚨 * ORÇAMENTO PROMOCIONAL * 🚨\n\n"

    PROMPT = """Aja como um assistente comercial da "PHOCO Impressão Digital".
Cliente: {customer}. Design: {salesperson}.

*Pedido:*
{items}

💰 *INVESTIMENTO TOTAL: R$ {total:.2f}*

*Condições:*
- 💳 *Sinal de 50% (R$ {down_payment:.2f})*.
- 🗓️ *Prazo:* {deadline} dias úteis.
- 🔗 *Link para Aprovação:* {url}

Gere um texto profissional para WhatsApp contendo essas informações.
Se houver envelopamento, cite o detalhamento das peças.
Assine como "{salesperson} - Design Phoco"."""

    def fallback_text(
        self,
        customer: Customer,
        items: Iterable[QuoteItem],
        total: float,
        deadline_days: int,
        salesperson_name: str,
        quote_url: str,
        discount: float = 0.0,
    ) -> str:
        items_list = "\n\n".join(format_item_line(i) for i in items)
        header = self.PROMO_HEADER if discount else ""
        return (
            f"{header}"
            f"Olá *{customer.name}*, tudo bem?\n"
            f"Aqui é *{salesperson_name}* da PHOCO Impressão Digital.\n\n"
            f"Conforme conversamos, segue o detalhamento do seu orçamento:\n\n"
            f"{items_list}\n\n"
            f"💰 *INVESTIMENTO TOTAL: R$ {total:.2f}*\n\n"
            f"🔗 *Link para Aprovação:*\n"
            f"{quote_url}\n\n"
            f"*Condições de Pagamento:*\n"
            f"- 💳 Sinal de 50% (R$ {total / 2:.2f}) para início.\n"
            f"- 🗓️ Prazo de produção: {deadline_days} dias úteis (após aprovação).\n\n"
            f"Podemos dar andamento?\n\n"
            f"*{salesperson_name}*\n"
            f"Design Phoco"
        )

    def generate(
        self,
        customer: Customer,
        items: List[QuoteItem],
        total: float,
        design_fee: float,
        install_fee: float,
        deadline_days: int,
        salesperson_name: str,
        quote_url: str,
        discount: float = 0.0,
    ) -> str:
        """Sales message; template text when Gemini is unavailable"""
        try:
            if not self.is_configured:
                return self.fallback_text(
                    customer, items, total, deadline_days, salesperson_name, quote_url, discount
                )
            prompt = self.PROMPT.format(
                customer=customer.name,
                salesperson=salesperson_name,
                items="\n\n".join(format_item_line(i) for i in items),
                total=total,
                down_payment=total / 2,
                deadline=deadline_days,
                url=quote_url,
            )
            if design_fee or install_fee:
                prompt += f"\nInclua taxa de arte R$ {design_fee:.2f} e instalação R$ {install_fee:.2f}."
            try:
                text = self._generate(prompt)
            except GeminiAPIError as e:
                logger.warning(f"Sales pitch generation failed: {e}")
                return self.fallback_text(
                    customer, items, total, deadline_days, salesperson_name, quote_url, discount
                )
            return (self.PROMO_HEADER if discount else "") + text
        except Exception as e:
            logger.error(f"Sales pitch fallback failed: {e}")
            return self.ERROR_TEXT


# ============================================================
# Mocks (no API key needed)
# ============================================================

class _MockResponseMixin:
    """Replays canned responses instead of calling Gemini"""

    def _setup_mock(self, responses: Optional[List[Any]]):
        self.api_key = "mock-key"
        self._initialized = True
        self.responses = list(responses or [])
        self.prompts: List[str] = []

    def initialize(self) -> bool:
        return True

    def _generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise GeminiAPIError("No mock response left", model="mock", status_code=503)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class MockVehiclePanelEstimator(_MockResponseMixin, VehiclePanelEstimator):
    def __init__(self, responses: Optional[List[Any]] = None, store: Any = None, use_fallback: bool = True):
        super().__init__(store=store, use_fallback=use_fallback)
        self._setup_mock(responses)


class MockPriceSuggester(_MockResponseMixin, PriceSuggester):
    def __init__(self, responses: Optional[List[Any]] = None):
        super().__init__()
        self._setup_mock(responses)


class MockSalesPitchGenerator(_MockResponseMixin, SalesPitchGenerator):
    def __init__(self, responses: Optional[List[Any]] = None):
        super().__init__()
        self._setup_mock(responses)


def create_estimator(use_mock: bool = False, store: Any = None) -> VehiclePanelEstimator:
    """Estimator for the current environment (mock has no canned answers: fallback tables)"""
    if use_mock:
        return MockVehiclePanelEstimator(store=store)
    return VehiclePanelEstimator(store=store)


if __name__ == "__main__":
    estimator = create_estimator(use_mock=True)
    panels = estimator.estimate("Volkswagen", "Saveiro", "2015")
    for name, dims in panels.items():
        print(f"  {name:24s} {dims.w:.2f} x {dims.h:.2f} m = {dims.area:.2f} m²")
