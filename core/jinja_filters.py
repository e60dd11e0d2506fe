"""
Helper para registrar filtros Jinja2 del tablero en todas las instancias de templates.
"""
import re

_NUMBER_RE = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)")

def currency_format(value):
    """
    Filtro Jinja2 para mostrar montos libres de la hoja como moneda.

    "50000" -> "$50,000", "1250.5" -> "$1,250.50"; lo que no sea número -> "".

    Uso en HTML: {{ deal.value | currency }}
    """
    if value is None:
        return ""

    text = str(value).strip().replace("$", "").replace(",", "")
    match = _NUMBER_RE.match(text)
    if not match:
        return ""

    amount = float(match.group(0))
    if amount.is_integer():
        return f"${amount:,.0f}"
    return f"${amount:,.2f}"

def clean_text(value):
    """
    Filtro Jinja2 para limpiar texto de caracteres de control (\\r, \\n).

    Uso en HTML: {{ deal.note | clean_text }}
    """
    if value is None:
        return ""
    return str(value).replace('\r', ' ').replace('\n', ' ').strip()

def register_board_filters(jinja_env):
    """
    Registra los filtros del tablero en una instancia de Jinja2.

    Uso:
        from core.jinja_filters import register_board_filters
        templates = Jinja2Templates(directory="templates")
        register_board_filters(templates.env)
    """
    jinja_env.filters["currency"] = currency_format
    jinja_env.filters["clean_text"] = clean_text
