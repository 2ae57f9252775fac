from typing import Dict, Iterable

# Fixed concessionary fare rule (students, seniors, PWD): 20% off
DISCOUNT_RATE = 0.8


def discounted_fare(regular_fare: float) -> float:
    """Concessionary fare for a regular fare amount"""
    return regular_fare * DISCOUNT_RATE


def calculate_fare_breakdown(segments: Iterable) -> Dict[str, float]:
    """Sum segment fares per transport mode"""
    breakdown: Dict[str, float] = {}
    for segment in segments:
        breakdown[segment.mode] = breakdown.get(segment.mode, 0.0) + segment.fare
    return breakdown
