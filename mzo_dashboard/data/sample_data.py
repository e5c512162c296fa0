from __future__ import annotations

from typing import List, Optional

import numpy as np
import pandas as pd

from mzo_dashboard.data.models import PerformanceMetric, Role, User

DEMO_PASSWORD = "12345"


def get_performance_data(days: int = 30, seed: int = 42, today: Optional[pd.Timestamp] = None) -> List[PerformanceMetric]:
    """Synthetic daily performance metrics for one CCC, newest date first."""
    rng = np.random.default_rng(seed)
    end = (today if today is not None else pd.Timestamp.today()).normalize()
    dates = pd.date_range(end=end, periods=days, freq="D")[::-1]

    revenue = rng.integers(500, 10500, days)
    orders = rng.integers(10, 110, days)
    customers = rng.integers(5, 55, days)
    efficiency = rng.uniform(0, 100, days).round(2)

    return [
        PerformanceMetric(
            date=d.strftime("%Y-%m-%d"),
            zone_code="6600000",
            region_code="6610000",
            division_code="6613000",
            ccc_code="6613001",
            revenue=float(revenue[i]),
            orders=int(orders[i]),
            customers=int(customers[i]),
            efficiency=float(efficiency[i]),
        )
        for i, d in enumerate(dates)
    ]


def get_demo_users() -> List[User]:
    return [
        User(
            user_id="admin_zone",
            role=Role.ZONE,
            full_name="Amitabh Mukherjee",
            office_name="Midnapore Zone",
            zone_code="6600000",
            mobile_number="9830012345",
            designation="Zonal Head",
            password_hash=DEMO_PASSWORD,
        ),
        User(
            user_id="reg_manager",
            role=Role.REGION,
            full_name="Sarah Khan",
            office_name="Burdwan Region",
            zone_code="6600000",
            region_code="6610000",
            mobile_number="0987654321",
            designation="Regional Manager",
            password_hash=DEMO_PASSWORD,
        ),
        User(
            user_id="dd",
            role=Role.DIVISION,
            full_name="D. Das",
            office_name="Howrah Division",
            zone_code="6600000",
            region_code="6610000",
            division_code="6613000",
            mobile_number="9900011122",
            designation="Division Manager",
            password_hash=DEMO_PASSWORD,
        ),
    ]
