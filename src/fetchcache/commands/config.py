"""Config commands -- view and modify global configuration.

Provides the ``fetchcache config`` sub-command group for reading and
updating the user's global configuration file
(:class:`~fetchcache.models.GlobalConfig`): cache directory, policy file,
catch-all TTL, and transport settings.
"""

from __future__ import annotations

import typer

from fetchcache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the current global configuration.

    Example::

        fetchcache config show
        fetchcache --json config show
    """
    from fetchcache.config import global_config_path, load_global_config

    config = load_global_config()
    info(f"Config file: {global_config_path()}")
    format_response(config.model_dump(mode="json"))


def _coerce(current: object, value: str) -> object:
    """Convert *value* to the type of the setting it replaces.

    Raises:
        ValueError: If *value* does not parse as the required number.
    """
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    return value


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'cache.policies_file')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the existing field's type and the result is
    validated against :class:`~fetchcache.models.GlobalConfig` before saving.

    Raises:
        typer.Exit: With code 2 if the key is unknown, the value cannot be
            coerced, or validation fails.

    Example::

        fetchcache config set cache.policies_file ~/policies.txt
        fetchcache config set request.timeout 10
        fetchcache config set request.raise_for_status true
    """
    from fetchcache.config import load_global_config, save_global_config
    from fetchcache.models import GlobalConfig

    data = load_global_config().model_dump(mode="json")

    *parents, final_key = key.split(".")
    target = data
    for part in parents:
        if not isinstance(target.get(part), dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[part]

    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    try:
        coerced = _coerce(target[final_key], value)
    except ValueError:
        error(f"Expected a number for {key}, got: {value}")
        raise typer.Exit(code=2) from None
    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")
