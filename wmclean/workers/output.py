"""
Result Output
=============
Writes removal results to an output directory.

Naming Convention:
- Cleaned image: filename-clean.png
- Before/after comparison: filename-compare.png
"""

from pathlib import Path

from wmclean.config import ImageConfig
from wmclean.core.compositor import create_comparison_image
from wmclean.core.imaging import output_filename, save_image
from wmclean.core.pipeline import RemovalResult


def save_removal_result(
        result: RemovalResult,
        output_dir: Path,
        config: ImageConfig,
        save_comparison: bool = False
) -> RemovalResult:
    """
    Save a result (and optionally its comparison image) into output_dir.

    The result's output_path / comparison_path fields are filled in.
    """
    source_name = result.source_path or result.file_name
    output_dir = Path(output_dir)

    result.output_path = save_image(
        result.image,
        output_dir / output_filename(
            source_name, config.output_suffix, config.output_format
        ),
    )

    if save_comparison:
        comparison = create_comparison_image(result.original, result.image)
        result.comparison_path = save_image(
            comparison,
            output_dir / output_filename(
                source_name, config.comparison_suffix, config.output_format
            ),
        )

    return result
