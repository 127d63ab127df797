"""
Cohort Barrier

A cohort is one population of commuters that shuttles between home and work
together. Its barrier is checked once per tick: nothing happens while any
member is still travelling, and once every member has reached its current
destination the cohort's direction flips and each member is sent back.
"""

import logging

logger = logging.getLogger(__name__)


class Cohort:
    """
    Population of agents sharing a commute direction.

    Members only need a `reached_destination` flag and a `flip_path()`
    method.

    Attributes:
        name: Cohort label (e.g. 'main', 'ngo')
        members: Agents in the cohort, in insertion order
        to_work: Direction flag, True while the cohort heads to work
    """

    def __init__(self, name, members=None, to_work=True):
        self.name = name
        self.members = list(members or [])
        self.to_work = to_work

    def add(self, agent):
        if agent not in self.members:
            self.members.append(agent)

    def remove(self, agent):
        if agent in self.members:
            self.members.remove(agent)

    def all_reached(self) -> bool:
        return all(m.reached_destination for m in self.members)

    def reached_flags(self):
        """Mapping of member key to its reached-destination flag."""
        return {getattr(m, 'key', i): m.reached_destination for i, m in enumerate(self.members)}

    def __len__(self):
        return len(self.members)

    def __iter__(self):
        return iter(list(self.members))

    def __repr__(self):
        direction = 'work' if self.to_work else 'home'
        return f"Cohort({self.name!r}, {len(self.members)} members, to {direction})"


class CohortBarrier:
    """Repeating scheduled check that flips a cohort once all members arrived."""

    def __init__(self, cohort: Cohort):
        self.cohort = cohort
        self.scheduler = None
        self.handle = None
        self.flip_count = 0
        self.last_flip_tick = None

    def register(self, scheduler, start_tick: int = 0, order: int = 10):
        """Check the barrier every tick from `start_tick` on."""
        self.scheduler = scheduler
        self.handle = scheduler.schedule_repeating(self.step, start_tick=start_tick, every=1, order=order)
        return self.handle

    def stop(self):
        if self.handle is not None:
            self.handle.stop()

    def step(self) -> bool:
        """
        Evaluate the barrier.

        Returns:
            True if the cohort flipped direction on this call
        """
        members = list(self.cohort.members)
        if not members:
            return False
        for member in members:
            if not member.reached_destination:
                return False

        self.cohort.to_work = not self.cohort.to_work
        for member in members:
            member.flip_path()

        self.flip_count += 1
        self.last_flip_tick = self.scheduler.current_tick if self.scheduler is not None else None
        logger.info("Cohort '%s' flipped towards %s at tick %s",
                    self.cohort.name, 'work' if self.cohort.to_work else 'home', self.last_flip_tick)
        return True
