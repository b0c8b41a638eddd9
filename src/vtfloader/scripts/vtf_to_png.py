"""Decode a VTF file, and save the frames as images.

Each frame is written as a PNG, or all of them to one animated GIF.
Requires Pillow.
"""
from typing import List, Optional
from pathlib import Path
import argparse
import sys

from vtfloader import VTFError, load_file
from vtfloader.logger import get_logger, init_logging


LOGGER = get_logger(__name__)


def frame_names(output: Path, count: int) -> List[Path]:
    """Produce the filename for each frame.

    Single images keep the name, otherwise the frame number is appended.
    """
    if count == 1:
        return [output]
    return [
        output.with_name(f'{output.stem}_{i}{output.suffix}')
        for i in range(count)
    ]


def main(argv: List[str]) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('file', type=Path, help='The VTF file to read.')
    parser.add_argument(
        '-o', '--output',
        type=Path,
        default=None,
        help='The file to write. Defaults to the input filename, with the extension changed.',
    )
    parser.add_argument(
        '--gif',
        action='store_true',
        help='Write all frames to a single animated GIF.',
    )
    args = parser.parse_args(argv)
    init_logging()

    vtf_path: Path = args.file
    output: Optional[Path] = args.output
    if output is None:
        output = vtf_path.with_suffix('.gif' if args.gif else '.png')

    try:
        anim = load_file(vtf_path)
    except (OSError, VTFError) as exc:
        LOGGER.error('Could not load "{}": {}', vtf_path, exc)
        return 1

    LOGGER.info('Loaded {}x{} image with {} frames.', anim.width, anim.height, len(anim))
    images = [frame.to_PIL() for frame in anim.frames]
    if args.gif:
        images[0].save(
            output,
            save_all=True,
            append_images=images[1:],
            # Frame delays are in hundredths of a second.
            duration=anim.delay * 10,
            loop=0 if anim.loop else 1,
        )
        LOGGER.info('Wrote {}', output)
    else:
        for img, path in zip(images, frame_names(output, len(images))):
            img.save(path)
            LOGGER.info('Wrote {}', path)
    return 0


if __name__ == '__main__':
    sys.exit(main(sys.argv[1:]))
