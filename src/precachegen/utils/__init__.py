from .paths import relative_to_output_path
from .sizes import format_bytes

__all__ = ["format_bytes", "relative_to_output_path"]
