"""
Tagged references for providers and schedule scopes.

A booking is fulfilled by exactly one provider, either a staff member or a
resource. A schedule (working hours, exceptions) belongs to exactly one scope,
which is either an appointment type or a provider. Both are modelled as a
(kind, id) pair so "exactly one of" holds by construction.
"""

from dataclasses import dataclass

from .enums import ProviderKind, ScopeKind


@dataclass(frozen=True)
class ProviderRef:
    kind: ProviderKind
    id: int

    @classmethod
    def staff(cls, staff_id: int) -> "ProviderRef":
        return cls(ProviderKind.STAFF, staff_id)

    @classmethod
    def resource(cls, resource_id: int) -> "ProviderRef":
        return cls(ProviderKind.RESOURCE, resource_id)

    def as_scope(self) -> "ScheduleScope":
        return ScheduleScope(ScopeKind(self.kind.value), self.id)


@dataclass(frozen=True)
class ScheduleScope:
    kind: ScopeKind
    id: int

    @classmethod
    def appointment_type(cls, appointment_type_id: int) -> "ScheduleScope":
        return cls(ScopeKind.APPOINTMENT_TYPE, appointment_type_id)

    @classmethod
    def provider(cls, ref: ProviderRef) -> "ScheduleScope":
        return ref.as_scope()

    @property
    def is_provider(self) -> bool:
        return self.kind != ScopeKind.APPOINTMENT_TYPE

    def as_provider(self) -> ProviderRef:
        if not self.is_provider:
            raise ValueError("Appointment type scopes have no provider")
        return ProviderRef(ProviderKind(self.kind.value), self.id)
