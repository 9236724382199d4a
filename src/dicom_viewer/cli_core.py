"""Command implementations shared by the command-line interface.

Each command takes the parsed arguments and a logger and returns a
process exit code.
"""

import json
import logging
import sys
import uuid
from io import BytesIO
from pathlib import Path

from .attributes import elements_to_json, parse_tags
from .dicom_file import DicomFile
from .errors import DicomViewerError
from .image_utils import encode_png
from .storage import open_store


def setup_logging(verbose=False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    format_str = '%(levelname)s: %(message)s' if not verbose else '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    logging.basicConfig(
        level=level,
        format=format_str
    )


def serve_command(args, logger):
    """Run the HTTP API server."""
    import uvicorn

    from .server import create_app

    try:
        store = open_store(args.storage_dir)
    except DicomViewerError as e:
        logger.error(f"Failed to open storage: {e}")
        return 1

    logger.warning(f"-- Starting server on {args.host}:{args.port} using {store!r} --")
    uvicorn.run(
        create_app(store),
        host=args.host,
        port=args.port,
        log_level="debug" if args.verbose else "info",
    )
    return 0


def upload_command(args, logger):
    """Store local DICOM files and print their new identifiers."""
    try:
        store = open_store(args.storage_dir)
    except DicomViewerError as e:
        logger.error(f"Failed to open storage: {e}")
        return 1

    for path in args.paths:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            return 1

        file_id = str(uuid.uuid4())
        try:
            store.create(DicomFile(file_id, len(data), BytesIO(data)))
        except DicomViewerError as e:
            logger.error(f"Failed to store {path}: {e}")
            return 1

        if args.verbose:
            logger.info(f"Stored {path} as {file_id}")
        print(file_id)

    return 0


def list_command(args, logger):
    """Print the identifiers of every stored file."""
    try:
        file_ids = open_store(args.storage_dir).list()
    except DicomViewerError as e:
        logger.error(f"Failed to list files: {e}")
        return 1

    for file_id in file_ids:
        print(file_id)
    return 0


def render_command(args, logger):
    """Render a stored file as a greyscale PNG."""
    output_path = Path(args.output)
    if output_path.suffix.lower() != ".png":
        logger.error("Output file must be .png")
        return 1

    try:
        dicom_file = open_store(args.storage_dir).get(args.file_id)
        images = dicom_file.images(remap=args.remap)
    except DicomViewerError as e:
        logger.error(f"Failed to render {args.file_id}: {e}")
        return 1

    if args.frame >= len(images):
        logger.error(f"Frame {args.frame} not found, file has {len(images)} frame(s)")
        return 1

    try:
        output_path.write_bytes(encode_png(images[args.frame]))
    except OSError as e:
        logger.error(f"Failed to write {output_path}: {e}")
        return 1

    if args.verbose:
        logger.info(f"Saved frame {args.frame} of {args.file_id} to {output_path}")
    return 0


def attributes_command(args, logger):
    """Print the elements of a stored file as JSON."""
    try:
        tags = parse_tags(args.tags)
        dicom_file = open_store(args.storage_dir).get(args.file_id)
        if tags:
            elements = dicom_file.find_elements(tags)
        else:
            elements = dicom_file.all_elements()
    except DicomViewerError as e:
        logger.error(f"Failed to read attributes of {args.file_id}: {e}")
        return 1

    indent = args.indent if args.indent > 0 else None
    json.dump(elements_to_json(elements), sys.stdout, indent=indent)
    sys.stdout.write("\n")
    return 0
