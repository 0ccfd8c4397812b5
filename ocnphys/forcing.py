"""
Time-varying forcing provider.

Components register named groups of fields with a provider and ask it to
refresh them every timestep. MonthlyClimatologyForcing serves 12-record
monthly climatologies from an xarray Dataset with piecewise-constant
("constant") interpolation in time.
"""

import logging
from typing import Dict, Mapping, NamedTuple, Optional, Protocol

import cftime
import jax.numpy as jnp
import xarray as xr

from ocnphys.timekeeping import (
    TimeInterval, advance_time, format_model_time, parse_model_time, parse_time_interval
)

logger = logging.getLogger(__name__)

INTERPOLATION_TYPES = ("constant",)


class ForcingProvider(Protocol):
    def init_group(self, group: str, start_time: str, cycle_start: str,
                   cycle_duration: str, do_restart: bool) -> None: ...

    def init_field(self, group: str, field: str, interpolation: str,
                   reference_time: str, interval: str) -> None: ...

    def init_field_data(self, group: str, do_restart: bool) -> None: ...

    def get_forcing(self, group: str, dt: float, clock: Optional[cftime.datetime] = None) -> None: ...

    def fields(self, group: str) -> Mapping[str, jnp.ndarray]: ...

    def write_restart_times(self) -> Dict[str, str]: ...


class ForcingField(NamedTuple):
    interpolation: str
    reference_time: cftime.datetime
    interval: TimeInterval


class ForcingGroup(NamedTuple):
    start_time: cftime.datetime
    cycle_start: cftime.datetime
    cycle_duration: TimeInterval
    fields: Dict[str, ForcingField]


class MonthlyClimatologyForcing:
    """
    Monthly climatology provider.

    Every registered field must be a variable of ``dataset`` with a dimension
    ``time_dim`` of length 12, the first record being the month of the field
    reference time. The forcing time of a group starts at its start time (or
    its restart time) and advances by ``dt`` on each refresh unless the
    caller passes the simulation clock.
    """

    def __init__(self, dataset: xr.Dataset, time_dim: str = "Time",
                 restart_times: Optional[Mapping[str, str]] = None):
        self.dataset = dataset
        self.time_dim = time_dim
        self.restart_times = dict(restart_times or {})
        self._groups: Dict[str, ForcingGroup] = {}
        self._times: Dict[str, cftime.datetime] = {}
        self._current: Dict[str, Dict[str, jnp.ndarray]] = {}

    def init_group(self, group, start_time, cycle_start, cycle_duration, do_restart=False):
        cycle = parse_time_interval(cycle_duration)
        if cycle != TimeInterval(years=1):
            raise ValueError(f"Monthly climatologies cycle over one year, got {cycle_duration!r}")
        self._groups[group] = ForcingGroup(
            start_time=parse_model_time(start_time),
            cycle_start=parse_model_time(cycle_start),
            cycle_duration=cycle,
            fields={},
        )
        logger.info("Registered forcing group %s", group)

    def init_field(self, group, field, interpolation, reference_time, interval):
        if group not in self._groups:
            raise KeyError(f"Unknown forcing group: {group}")
        if interpolation not in INTERPOLATION_TYPES:
            raise ValueError(f"Invalid interpolation type: {interpolation}. Must be one of: {list(INTERPOLATION_TYPES)}")
        if parse_time_interval(interval) != TimeInterval(months=1):
            raise ValueError(f"Monthly climatologies need a one-month interval, got {interval!r}")
        if field not in self.dataset:
            raise KeyError(f"Forcing field {field} not found in dataset")
        if self.dataset[field].sizes.get(self.time_dim) != 12:
            raise ValueError(f"Forcing field {field} needs 12 records along {self.time_dim}")
        self._groups[group].fields[field] = ForcingField(
            interpolation=interpolation,
            reference_time=parse_model_time(reference_time),
            interval=parse_time_interval(interval),
        )
        logger.info("Registered forcing field %s in group %s", field, group)

    def init_field_data(self, group, do_restart=False):
        """Load the records valid at the group start (or restart) time"""
        start = self._groups[group].start_time
        if do_restart and group in self.restart_times:
            start = parse_model_time(self.restart_times[group])
            logger.info("Restarting forcing group %s at %s", group, format_model_time(start))
        self._times[group] = start
        self._load(group)

    def get_forcing(self, group, dt, clock=None):
        """Advance the group to the simulation clock, or by dt seconds"""
        if group not in self._times:
            raise KeyError(f"Forcing group {group} has no data; call init_field_data first")
        self._times[group] = clock if clock is not None else advance_time(self._times[group], dt)
        self._load(group)
        logger.debug("Forcing group %s at %s", group, format_model_time(self._times[group]))

    def fields(self, group):
        return self._current[group]

    def forcing_time(self, group) -> cftime.datetime:
        return self._times[group]

    def write_restart_times(self):
        self.restart_times.update({group: format_model_time(time) for group, time in self._times.items()})
        return dict(self.restart_times)

    def _load(self, group):
        month = self._times[group].month
        current = {}
        for field, registered in self._groups[group].fields.items():
            # records are counted in months from the reference time
            record = (month - registered.reference_time.month) % 12
            current[field] = jnp.asarray(self.dataset[field].isel({self.time_dim: record}).values)
        self._current[group] = current
