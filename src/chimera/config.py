""" Process-wide configuration for the compute side. The configuration is
    loaded exactly once at startup, frozen, and handed explicitly to each
    component that needs it; there is no module-level mutable state here.

    Sources are applied in order, later sources overriding earlier ones:
    built-in defaults, an optional YAML file, environment variables, and
    finally keyword overrides (typically from the command line).
"""

from __future__ import annotations

import dataclasses
import os
from typing import Any, Dict, FrozenSet, Mapping, Optional

import yaml

from .limits import Limits
from .protocol.message import Module


DEFAULT_HOST = 'localhost'
DEFAULT_PORT = 5000

# Environment variables understood by load(). The credential keeps its
# historical name so that existing deployments continue to work.

environment = {
    'host': 'CHIMERA_HOST',
    'port': 'CHIMERA_PORT',
    'modules': 'CHIMERA_MODULES',
    'workers': 'CHIMERA_WORKERS',
    'idle_timeout': 'CHIMERA_IDLE_TIMEOUT',
    'quantum_api_key': 'QUANTUM_API_KEY',
    'quantum_channel': 'CHIMERA_QUANTUM_CHANNEL',
    'log_level': 'CHIMERA_LOG_LEVEL',
}

config_file_variable = 'CHIMERA_CONFIG'


@dataclasses.dataclass(frozen=True)
class Configuration:
    """ Immutable configuration consumed by the daemon, the dispatcher, and
        the handlers. A *port* of 0 requests an automatically assigned port.
        The *quantum_api_key* is the only credential in the system; when it
        is None, quantum execution is restricted to the simulator.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    modules: FrozenSet[Module] = frozenset(Module)
    workers: int = 8
    idle_timeout: float = 300.0
    quantum_api_key: Optional[str] = dataclasses.field(default=None, repr=False)
    quantum_channel: str = 'ibm_quantum_platform'
    log_level: str = 'INFO'
    limits: Limits = dataclasses.field(default_factory=Limits)

    def __post_init__(self):

        if not 0 <= self.port <= 65535:
            raise ValueError('port out of range: %r' % (self.port))

        if self.workers < 1:
            raise ValueError('at least one worker is required')

        if self.idle_timeout <= 0:
            raise ValueError('idle_timeout must be positive')

        if len(self.modules) == 0:
            raise ValueError('at least one module must be allowed')


    def allows(self, module: Module) -> bool:
        return module in self.modules


    def replace(self, **changes) -> 'Configuration':
        return dataclasses.replace(self, **changes)



def load(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None, **overrides) -> Configuration:
    """ Build a :class:`Configuration`. If *path* is None the file named by
        the CHIMERA_CONFIG environment variable is used, if set. *environ*
        defaults to :data:`os.environ`; tests pass an explicit dictionary.
        Keyword *overrides* that are None are ignored, which makes it easy
        to pass unset command-line arguments straight through.
    """

    if environ is None:
        environ = os.environ

    settings: Dict[str, Any] = dict()

    if path is None:
        path = environ.get(config_file_variable) or None

    if path is not None:
        settings.update(read_file(path))

    for name, variable in environment.items():
        try:
            value = environ[variable]
        except KeyError:
            continue

        if value == '':
            continue

        settings[name] = value

    for name, value in overrides.items():
        if value is not None:
            settings[name] = value

    return build(settings)



def read_file(path: str) -> Dict[str, Any]:
    """ Read a YAML configuration file and return its top-level mapping.
    """

    with open(path, 'r', encoding='utf-8') as handle:
        contents = yaml.safe_load(handle)

    if contents is None:
        return dict()

    if not isinstance(contents, dict):
        raise ValueError('configuration file must contain a mapping: ' + path)

    return contents



def build(settings: Mapping[str, Any]) -> Configuration:
    """ Coerce a loosely-typed settings mapping (strings from the environment,
        native values from YAML) into a :class:`Configuration`.
    """

    known = set(field.name for field in dataclasses.fields(Configuration))
    kwargs: Dict[str, Any] = dict()

    for name, value in settings.items():
        if name not in known:
            raise ValueError('unknown configuration setting: ' + str(name))

        if name == 'port' or name == 'workers':
            value = int(value)
        elif name == 'idle_timeout':
            value = float(value)
        elif name == 'modules':
            value = parse_modules(value)
        elif name == 'limits':
            if not isinstance(value, Limits):
                value = Limits.from_dict(value)
        elif name == 'log_level':
            value = str(value).upper()
        elif value is not None:
            value = str(value)

        kwargs[name] = value

    return Configuration(**kwargs)



def parse_modules(value) -> FrozenSet[Module]:
    """ Accept either a comma-separated string or a sequence of module names.
    """

    if isinstance(value, str):
        names = [name.strip() for name in value.split(',')]
    else:
        names = list(value)

    modules = set()
    for name in names:
        if isinstance(name, Module):
            modules.add(name)
            continue
        if name == '':
            continue
        try:
            modules.add(Module(name))
        except ValueError:
            raise ValueError('unknown module in allow-list: ' + str(name))

    return frozenset(modules)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
