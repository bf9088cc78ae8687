"""System registry — maps encounter commands to the system that handles them."""
from __future__ import annotations

from typing import Any

from digital_adventure.systems.base import EncounterSystem


class SystemRegistry:
    def __init__(self) -> None:
        self._systems: dict[str, EncounterSystem] = {}

    def register(self, system: EncounterSystem) -> None:
        self._systems[system.system_id] = system

    def find_system(self, command: Any) -> EncounterSystem | None:
        for system in self._systems.values():
            if system.can_handle(command):
                return system
        return None

    def handled_commands(self) -> set[str]:
        commands: set[str] = set()
        for system in self._systems.values():
            commands |= system.handled_commands
        return commands

    def register_defaults(self) -> None:
        from digital_adventure.systems.combat.system import CombatSystem
        from digital_adventure.systems.evolution.system import EvolutionSystem
        from digital_adventure.systems.intercede.system import IntercedeSystem
        from digital_adventure.systems.orders.system import OrderSystem
        from digital_adventure.systems.requests.system import RequestSystem
        from digital_adventure.systems.turns.system import TurnSystem

        self.register(TurnSystem())
        self.register(CombatSystem())
        self.register(IntercedeSystem())
        self.register(RequestSystem())
        self.register(OrderSystem())
        self.register(EvolutionSystem())
