"""
Dashboard
Fetches one snapshot of contacts and sales and runs both aggregators over the
selected period.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from ebikecrm.config import config
from ebikecrm.engine import crm
from ebikecrm.engine.sales import SalesSummary, sales_conversion_rate, summarize_sales
from ebikecrm.engine.stages import DayCount, StageSummary, leads_by_day, summarize_stages
from ebikecrm.models import Stage

logger = logging.getLogger(__name__)


@dataclass
class DashboardMetrics:
    mode: str
    reference: date
    stages: StageSummary
    sales: SalesSummary
    leads_by_day: List[DayCount] = field(default_factory=list)
    sales_conversion_rate: int = 0


def build_dashboard(
    mode: Optional[str] = None,
    reference: Optional[date] = None,
    today: Optional[date] = None,
) -> DashboardMetrics:
    """
    Metrics for the day, month or year containing reference (default: today).
    Leads-by-day always covers the trailing window ending today, whatever the
    period.
    """
    mode = mode or config.DEFAULT_PERIOD
    today = today or crm.today()
    reference = reference or today

    contacts = crm.list_contacts()
    sales = crm.list_sales()

    stages = summarize_stages(contacts, mode, reference)
    sales_summary = summarize_sales(sales, stages.start, stages.end)

    metrics = DashboardMetrics(
        mode=mode,
        reference=reference,
        stages=stages,
        sales=sales_summary,
        leads_by_day=leads_by_day(contacts, today, days=config.LEADS_WINDOW_DAYS),
        sales_conversion_rate=sales_conversion_rate(
            sales_summary.total, stages.counts[Stage.QUALIFIED]
        ),
    )
    logger.info(
        f"Dashboard {mode} {reference}: {stages.total} leads, "
        f"{sales_summary.total} sales, revenue {sales_summary.revenue}"
    )
    return metrics
