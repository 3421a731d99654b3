"""Insight plugin framework.

A plugin is any object with a ``name`` and an async ``analyze(context)``
returning a list of ``InsightItem``. Plugins only read through the
context; the registry persists what they return, including any attached
alert, tagged with the run id.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol

from services.data_provider import DateRange
from services.repository import Repository

logger = logging.getLogger(__name__)


@dataclass
class AlertSpec:
    """Alert to raise alongside an insight."""
    severity: str  # "low", "medium", "high"
    message: str
    entity_id: str | None = None
    playbook_title: str | None = None
    playbook_steps: list[str] = field(default_factory=list)

    def action(self) -> dict:
        if not self.playbook_title:
            return {}
        return {"title": self.playbook_title, "steps": self.playbook_steps}


@dataclass
class InsightItem:
    type: str
    title: str
    description: str
    evidence: dict | list = field(default_factory=dict)
    entity_id: str | None = None
    alert: AlertSpec | None = None


@dataclass
class InsightContext:
    run_id: int
    entity_id: str
    date_range: DateRange
    data: Repository

    @property
    def today(self) -> date:
        return self.date_range.end


class InsightPlugin(Protocol):
    name: str

    async def analyze(self, context: InsightContext) -> list[InsightItem]: ...


class PluginRegistry:
    """Runs registered plugins in order, isolating their failures."""

    def __init__(self, plugins: list[InsightPlugin] | None = None):
        self.plugins: list[InsightPlugin] = list(plugins or [])

    def register(self, plugin: InsightPlugin) -> None:
        self.plugins.append(plugin)

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.plugins]

    async def run_all(self, context: InsightContext) -> list[InsightItem]:
        """Run every plugin and persist its insights. A failing plugin is logged and skipped."""
        logger.info(f"Running {len(self.plugins)} insight plugins for run {context.run_id}")
        produced: list[InsightItem] = []

        for plugin in self.plugins:
            try:
                items = await plugin.analyze(context)
                for item in items:
                    await self._persist(context, item)
            except Exception:
                logger.exception(f"Insight plugin {plugin.name} failed")
                continue

            produced.extend(items)
            if items:
                logger.info(f"Plugin {plugin.name} produced {len(items)} insight(s)")

        return produced

    async def _persist(self, context: InsightContext, item: InsightItem) -> None:
        row = await context.data.insert_insight(
            run_id=context.run_id,
            insight_type=item.type,
            title=item.title,
            description=item.description,
            evidence=item.evidence,
            entity_id=item.entity_id,
        )
        if item.alert is not None:
            await context.data.insert_alert(
                run_id=context.run_id,
                alert_type=item.type,
                severity=item.alert.severity,
                message=item.alert.message,
                entity_id=item.alert.entity_id,
                action=item.alert.action(),
                insight_id=row.id,
            )


def default_registry(namer=None) -> PluginRegistry:
    """Registry with the standard insight and alert plugins, in run order."""
    from services.alert_plugins import CompetitorGapHitPlugin, CtrDropPlugin
    from services.insight_plugins import (
        AnomalyDaysPlugin,
        CtrBottleneckPlugin,
        QualityRankingPlugin,
        SleepersPlugin,
        TopicGapsPlugin,
        TopMoversPlugin,
        TrendBreakPlugin,
    )

    return PluginRegistry([
        TopMoversPlugin(),
        CtrBottleneckPlugin(),
        AnomalyDaysPlugin(),
        TrendBreakPlugin(),
        SleepersPlugin(),
        QualityRankingPlugin(),
        TopicGapsPlugin(namer),
        CtrDropPlugin(),
        CompetitorGapHitPlugin(),
    ])
