DEFAULT_RATE_PER_SERVING = 50.0


def calculate_donation_amount(serves, rate_per_serving=DEFAULT_RATE_PER_SERVING):
    """Fair market value of a food donation: servings times the per-serving rate."""
    serves = serves or 0
    if serves < 0:
        raise ValueError(f"Serving count cannot be negative: {serves}")
    return round(serves * float(rate_per_serving), 2)


def format_amount(amount, currency='INR'):
    return f"{currency} {amount:.2f}"


def build_valuation(serves, rate_per_serving=DEFAULT_RATE_PER_SERVING, currency='INR'):
    serves = serves or 0
    amount = calculate_donation_amount(serves, rate_per_serving)

    # Build Valuation Dict
    valuation = {
        "serves": serves,
        "rate_per_serving": float(rate_per_serving),
        "amount": amount,
        "currency": currency,
        "rate_display": format_amount(float(rate_per_serving), currency),
        "amount_display": format_amount(amount, currency),
    }
    return valuation
