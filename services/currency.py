DEFAULT_CURRENCY = "USD"

COUNTRY_CURRENCY = {
    "India": "INR",
    "Nigeria": "NGN",
    "USA": "USD",
    "United States": "USD",
    "United Kingdom": "GBP",
    "Germany": "EUR",
    "France": "EUR",
    "Pakistan": "INR",
    "Bangladesh": "INR",
    "Sri Lanka": "INR",
}

MIN_WITHDRAWAL = {
    "INR": 100,
    "USD": 10,
    "NGN": 500,
    "EUR": 10,
}
DEFAULT_MIN_WITHDRAWAL = 10
MIN_DEPOSIT = 10
MAX_TRANSFER = 100000


def currency_for_country(country: str) -> str:
    return COUNTRY_CURRENCY.get(country, DEFAULT_CURRENCY)


def min_withdrawal(currency: str) -> float:
    return MIN_WITHDRAWAL.get(currency, DEFAULT_MIN_WITHDRAWAL)
