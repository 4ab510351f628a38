"""
Plan catalogue: seats included per plan, monthly prices and Stripe price ids
"""
from decimal import Decimal

from django.conf import settings

PLAN_INCLUDED = {
    'individual': 1,
    'starter': 1,
    'pro': 10,
    'enterprise': 50,
}

# GBP per month
PLAN_PRICES = {
    'individual': Decimal('15'),
    'starter': Decimal('49'),
    'pro': Decimal('99'),
    'enterprise': Decimal('299'),
}

PLAN_NAMES = {
    'individual': 'Individual',
    'starter': 'Starter',
    'pro': 'Pro',
    'enterprise': 'Enterprise',
}

SEAT_ADDON_PRICE = Decimal('9')

# Plans selectable at checkout and by the admin plan update
CHECKOUT_PLANS = ['starter', 'pro', 'enterprise']


def _base_price_ids():
    prices = settings.STRIPE_PRICES
    return {
        'individual': prices.get('individual_base'),
        'starter': prices.get('starter_base'),
        'pro': prices.get('pro_base'),
        'enterprise': prices.get('enterprise_base'),
    }


def plan_from_price_id(price_id):
    """Map a Stripe base price id back to a plan name"""
    if not price_id:
        return None
    for plan, plan_price_id in _base_price_ids().items():
        if plan_price_id and plan_price_id == price_id:
            return plan
    return None


def price_id_from_plan(plan):
    return _base_price_ids().get(plan)


def checkout_price_id(plan):
    """Stripe price used by the in-app checkout for a plan"""
    if plan not in CHECKOUT_PLANS:
        return None
    return settings.STRIPE_PRICES.get(plan) or None


def get_plan_details(plan):
    if plan not in PLAN_INCLUDED:
        return None
    return {
        'plan': plan,
        'name': PLAN_NAMES[plan],
        'base_price': PLAN_PRICES[plan],
        'included_seats': PLAN_INCLUDED[plan],
        'seat_addon_price': SEAT_ADDON_PRICE,
        'currency': 'GBP',
    }


def calculate_monthly_cost(plan, active_users):
    """Base price plus the seat add-on for every user above the included seats"""
    details = get_plan_details(plan)
    if details is None:
        raise ValueError(f"Unknown plan: {plan}")
    overage = max(0, int(active_users) - details['included_seats'])
    return details['base_price'] + overage * SEAT_ADDON_PRICE


def get_available_plans():
    return [get_plan_details(plan) for plan in PLAN_INCLUDED]
