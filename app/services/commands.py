"""Recognition of in-band control commands.

Commands are plain user text starting with a fixed prefix, e.g. ``/sys:english``.
They are handled by the orchestrator and never reach the model.
"""

from dataclasses import dataclass

DEFAULT_COMMAND_PREFIX = "/sys:"


@dataclass(frozen=True)
class HelpCommand:
    """List the available presets."""


@dataclass(frozen=True)
class SwitchPresetCommand:
    """Clear history and switch to a named preset."""

    preset: str


@dataclass(frozen=True)
class AddFeatureCommand:
    feature: str


@dataclass(frozen=True)
class RemoveFeatureCommand:
    feature: str


Command = HelpCommand | SwitchPresetCommand | AddFeatureCommand | RemoveFeatureCommand


def parse_command(text: str | None, prefix: str = DEFAULT_COMMAND_PREFIX) -> Command | None:
    """Parse a control command.

    Syntax after the prefix:
        (empty) or ``help``  -> HelpCommand
        ``+<feature>``        -> AddFeatureCommand
        ``-<feature>``        -> RemoveFeatureCommand
        ``<name>``            -> SwitchPresetCommand

    Returns:
        The command, or None if the text is not a command
    """
    if not text:
        return None

    stripped = text.strip()
    if not stripped.startswith(prefix):
        return None

    argument = stripped[len(prefix) :].strip()

    if not argument or argument.lower() == "help":
        return HelpCommand()

    if argument[0] in "+-":
        feature = argument[1:].strip()
        if not feature:
            return HelpCommand()
        return AddFeatureCommand(feature) if argument[0] == "+" else RemoveFeatureCommand(feature)

    return SwitchPresetCommand(argument)
