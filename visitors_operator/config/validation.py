"""
Checks the loaded library config against config_validation.yaml.

Every leaf of the validation file is a mapping with a "type" key and that
type's bounds:

    number, int:  min, max
    str:          min_len, max_len
    bool
    enum:         values

Any leaf may also set "optional: true" to allow null. Mappings without a known
"type" are sections and are walked recursively.
"""

# Standard
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

# First Party
import aconfig
import alog

# Local
from .. import constants
from ..utils import nested_get

log = alog.use_channel("CONFG")


## Bound checks ################################################################

# pylint: disable=redefined-builtin


def _in_range(value, min=None, max=None) -> bool:
    return (min is None or value >= min) and (max is None or value <= max)


def _len_in_range(value, min_len=None, max_len=None) -> bool:
    return _in_range(len(value), min=min_len, max=max_len)


def _one_of(value, values) -> bool:
    return value in values


def _anything(_) -> bool:
    return True


# pylint: enable=redefined-builtin


class _ParamType(NamedTuple):
    types: Tuple[type, ...]
    check: Callable[..., bool]


PARAM_TYPES: Dict[str, _ParamType] = {
    "number": _ParamType((int, float), _in_range),
    "int": _ParamType((int,), _in_range),
    "str": _ParamType((str,), _len_in_range),
    "bool": _ParamType((bool,), _anything),
    "enum": _ParamType((str, int), _one_of),
}


## Parameters ##################################################################


class ConfigParam(NamedTuple):
    """One validated leaf of the library config"""

    type_name: str
    bounds: Dict[str, Any] = {}
    optional: bool = False

    def validate(self, value: Any) -> bool:
        if value is None:
            return self.optional

        param_type = PARAM_TYPES[self.type_name]
        # bool is an int subclass, so it only matches where bool is named
        if (isinstance(value, bool) and bool not in param_type.types) or (
            not isinstance(value, param_type.types)
        ):
            log.warning("Invalid type <%s>", type(value).__name__)
            return False

        if not param_type.check(value, **self.bounds):
            log.warning("Invalid value [%s] for bounds %s", value, self.bounds)
            return False
        return True


def parse_validation_config(
    validation_config: dict, prefix: Optional[str] = None
) -> Dict[str, ConfigParam]:
    """Flatten the validation config into a map from dotted keys to params"""
    params = {}
    for key, val in validation_config.items():
        if not isinstance(val, dict):
            continue
        nested_key = (
            key if prefix is None else constants.NESTED_DICT_DELIM.join([prefix, key])
        )
        type_name = val.get("type")
        if isinstance(type_name, str) and type_name in PARAM_TYPES:
            bounds = {
                bound: bound_val
                for bound, bound_val in val.items()
                if bound not in ["type", "optional"]
            }
            if type_name == "enum":
                assert bounds.get("values"), f"Enum {nested_key} has no values"
            log.debug3("Found %s parameter at %s", type_name, nested_key)
            params[nested_key] = ConfigParam(
                type_name, bounds, bool(val.get("optional", False))
            )
        else:
            params.update(parse_validation_config(val, nested_key))
    return params


## Public ######################################################################


def get_invalid_params(
    config: aconfig.Config,
    validation_config: aconfig.Config,
) -> List[str]:
    """Get the dotted keys of every config value that fails validation

    Args:
        config:  aconfig.Config
            The loaded library config, including env overrides
        validation_config:  aconfig.Config
            The parallel validation config

    Returns:
        invalid_params:  List[str]
            The failing keys, in validation file order
    """
    invalid_params = [
        key
        for key, param in parse_validation_config(validation_config).items()
        if not param.validate(nested_get(config, key))
    ]
    for key in invalid_params:
        log.warning("Found invalid config key [%s]", key)
    return invalid_params
