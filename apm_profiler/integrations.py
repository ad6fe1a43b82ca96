"""Integration manifest models and loader.

The manifest is a YAML list of integrations, read from the file named by
``ELASTIC_APM_PROFILER_INTEGRATIONS``. Records are returned in file order
and are not filtered or checked beyond their shape; deciding what to
instrument is the caller's job.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional, Type, TypeVar, Union

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from apm_profiler.env import ELASTIC_APM_PROFILER_INTEGRATIONS, get_integrations_path
from apm_profiler.errors import E_FAIL, IntegrationsLoadError

MAX_VERSION_PART = 65535


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class WrapperMethodAction(str, Enum):
    """How the wrapper method is applied to its target."""

    CALL_TARGET_MODIFICATION = "CallTargetModification"
    REPLACE_TARGET_METHOD = "ReplaceTargetMethod"
    INSERT_FIRST = "InsertFirst"
    NONE = "None"


class _ManifestModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class CallerMethodReference(_ManifestModel):
    """Restricts a replacement to call sites inside this method."""

    assembly: Optional[str] = None
    type: Optional[str] = None
    method: Optional[str] = None


class TargetMethodReference(_ManifestModel):
    """The method to instrument and the assembly versions it applies to."""

    assembly: str
    type: str
    method: str
    signature_types: Optional[List[str]] = None
    minimum_major: int = Field(default=0, ge=0, le=MAX_VERSION_PART)
    minimum_minor: int = Field(default=0, ge=0, le=MAX_VERSION_PART)
    minimum_patch: int = Field(default=0, ge=0, le=MAX_VERSION_PART)
    maximum_major: int = Field(default=MAX_VERSION_PART, ge=0, le=MAX_VERSION_PART)
    maximum_minor: int = Field(default=MAX_VERSION_PART, ge=0, le=MAX_VERSION_PART)
    maximum_patch: int = Field(default=MAX_VERSION_PART, ge=0, le=MAX_VERSION_PART)


class WrapperMethodReference(_ManifestModel):
    """The managed code that handles an instrumented call."""

    assembly: str
    type: str
    method: Optional[str] = None
    signature: Optional[str] = None
    action: WrapperMethodAction = WrapperMethodAction.NONE


class MethodReplacement(_ManifestModel):
    caller: Optional[CallerMethodReference] = None
    target: Optional[TargetMethodReference] = None
    wrapper: Optional[WrapperMethodReference] = None


class Integration(_ManifestModel):
    """One named integration and the methods it replaces."""

    name: str
    method_replacements: List[MethodReplacement] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

M = TypeVar("M", bound=BaseModel)


def _disabled(message: str, path: str = "") -> IntegrationsLoadError:
    logger.warning(f"{message}. profiler is disabled.")
    return IntegrationsLoadError(message, path=path, code=E_FAIL)


def load_integrations_from_path(
    path: Union[str, Path], model: Type[M] = Integration
) -> List[M]:
    """Load and parse the manifest at *path*.

    Args:
        path: Manifest file.
        model: Pydantic model each list entry is parsed into.

    Returns:
        The parsed records, in file order.

    Raises:
        IntegrationsLoadError: If the file cannot be read or parsed.
    """
    try:
        with open(path, "rb") as f:
            return TypeAdapter(List[model]).validate_python(yaml.safe_load(f))
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise _disabled(
            f"Problem reading integrations file {path}: {e}", str(path)
        ) from e


def load_integrations(model: Type[M] = Integration) -> List[M]:
    """Load the manifest named by ``ELASTIC_APM_PROFILER_INTEGRATIONS``.

    Loads fresh on every call. Every failure is logged as a warning and
    raised as ``IntegrationsLoadError`` with ``code == E_FAIL``; the host
    uses it to disable instrumentation.

    Raises:
        IntegrationsLoadError: If the variable is unset, or the file cannot
            be read or parsed.
    """
    path = get_integrations_path()
    if path is None:
        raise _disabled(
            f"Problem reading {ELASTIC_APM_PROFILER_INTEGRATIONS} environment "
            "variable: environment variable not found"
        )
    return load_integrations_from_path(path, model)
