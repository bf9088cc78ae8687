"""Special order unlocks and costs — pure lookups over the order catalog."""
from __future__ import annotations

from dataclasses import dataclass

from digital_adventure.content.loader import load_special_orders

ATTRIBUTES = ("agility", "body", "charisma", "intelligence", "willpower")


@dataclass
class SpecialOrder:
    attribute: str
    name: str
    type: str
    effect: str
    tier: int


def unlocked_orders(
    attributes: dict[str, int],
    xp_attribute_bonuses: dict[str, int] | None,
    campaign_level: str = "standard",
) -> list[SpecialOrder]:
    """Orders a tamer has unlocked.

    Each attribute lists three orders; the Nth unlocks once the attribute
    (plus XP bonuses) reaches the Nth threshold of the campaign level.
    """
    thresholds, orders_by_attr = load_special_orders()
    tier_thresholds = thresholds.get(campaign_level) or thresholds["standard"]
    bonuses = xp_attribute_bonuses or {}

    unlocked: list[SpecialOrder] = []
    for attr, orders in orders_by_attr.items():
        total = attributes.get(attr, 0) + bonuses.get(attr, 0)
        for index, order in enumerate(orders):
            if index < len(tier_thresholds) and total >= tier_thresholds[index]:
                unlocked.append(SpecialOrder(
                    attribute=attr,
                    name=order["name"],
                    type=order["type"],
                    effect=order["effect"],
                    tier=index + 1,
                ))
    return unlocked


def find_unlocked(name: str, unlocked: list[SpecialOrder]) -> SpecialOrder | None:
    for order in unlocked:
        if order.name == name:
            return order
    return None


def order_action_cost(order_type: str) -> int:
    """Simple actions needed to issue an order, read from its type string."""
    if "Complex" in order_type:
        return 2
    if "Simple" in order_type:
        return 1
    if "Free" in order_type or "Passive" in order_type or "Intercede" in order_type:
        return 0
    return 1
