"""Configuration for path mapper access.

Provides the configuration dataclass and the configure factory used to
fix raw-access and write-through switches when a mapper is built.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PathMapperConfig:
    """Switches fixed at construction time.

    Attributes:
        use_raw_file_access: Serve data through positioned reads/writes on
            open backing-file handles instead of whole-file reads. Useful
            for large or binary files.
        allow_write: Let writes against virtual paths go through to the
            real backing files.
    """

    use_raw_file_access: bool = False
    allow_write: bool = False


def configure(**kwargs) -> PathMapperConfig:
    """Build a PathMapperConfig from keyword options.

    Args:
        **kwargs: Configuration switches.
            - use_raw_file_access (bool): Optional (default: False).
            - allow_write (bool): Optional (default: False).

    Returns:
        PathMapperConfig for PathMapperFS initialization.

    Raises:
        ValueError: If unknown options are given.

    Examples:
        >>> configure(use_raw_file_access=True)
        PathMapperConfig(use_raw_file_access=True, allow_write=False)
    """
    use_raw_file_access = kwargs.pop("use_raw_file_access", False)
    allow_write = kwargs.pop("allow_write", False)

    if kwargs:
        raise ValueError(
            f"Unexpected arguments for path mapper: {list(kwargs.keys())}"
        )

    return PathMapperConfig(
        use_raw_file_access=bool(use_raw_file_access),
        allow_write=bool(allow_write),
    )
