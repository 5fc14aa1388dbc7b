from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ServiceResult:
    """Outcome of one stage operation; stages return this instead of raising"""
    success: bool
    message: str
    data: Optional[Any] = None

    @classmethod
    def successful(cls, message: str, data: Any = None) -> "ServiceResult":
        return cls(True, message, data)

    @classmethod
    def failure(cls, message: str, data: Any = None) -> "ServiceResult":
        return cls(False, message, data)

    def __bool__(self):
        return self.success


class RunStatus:
    SUCCESS = 'success'
    PARTIAL_SUCCESS = 'partial_success'
    FAILURE = 'failure'


@dataclass
class StageCounter:
    succeeded: int = 0
    failed: int = 0

    def record(self, result: ServiceResult):
        if result.success:
            self.succeeded += 1
        else:
            self.failed += 1


@dataclass
class WeeklyUpdateSummary:
    """Per-stage tallies of one weekly update run"""
    total_clans: int = 0
    clan_updates: StageCounter = field(default_factory=StageCounter)
    history_updates: StageCounter = field(default_factory=StageCounter)
    war_history_updates: StageCounter = field(default_factory=StageCounter)
    roster_backup: Optional[ServiceResult] = None
    high_tier_averages: Optional[ServiceResult] = None
    standard_tier_averages: Optional[ServiceResult] = None
    roster_assignment: Optional[ServiceResult] = None
    failed_clans: dict = field(default_factory=dict)  # tag -> list of failed stage names

    @property
    def stages(self):
        return (self.clan_updates, self.history_updates, self.war_history_updates)

    @property
    def status(self) -> str:
        if all(stage.failed == 0 for stage in self.stages):
            return RunStatus.SUCCESS
        if any(stage.succeeded > 0 for stage in self.stages):
            return RunStatus.PARTIAL_SUCCESS
        return RunStatus.FAILURE

    def describe(self) -> str:
        return (
            f"Total Clans: {self.total_clans}, "
            f"Successful Clan Updates: {self.clan_updates.succeeded}, Failed Clan Updates: {self.clan_updates.failed}, "
            f"Successful ClanHistory Updates: {self.history_updates.succeeded}, "
            f"Failed ClanHistory Updates: {self.history_updates.failed}, "
            f"Successful PlayerWarHistory Updates: {self.war_history_updates.succeeded}, "
            f"Failed PlayerWarHistory Updates: {self.war_history_updates.failed}"
        )

    def to_result(self) -> ServiceResult:
        summary = f"Data update completed. {self.describe()}"
        status = self.status
        if status == RunStatus.SUCCESS:
            return ServiceResult.successful(summary, self)
        if status == RunStatus.PARTIAL_SUCCESS:
            return ServiceResult.successful(f"Partial success: {summary}", self)
        return ServiceResult.failure(f"All updates failed: {summary}", self)
