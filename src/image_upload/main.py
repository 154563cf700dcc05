"""Main module for the image upload CLI."""

import argparse
import json
import mimetypes
import sys
from pathlib import Path
from typing import List, Optional

from urllib3 import encode_multipart_formdata

from . import __version__
from .core import ConfigurationError, ImageUploadError, get_logger, load_settings
from .core.factories import UploadPipelineFactory

CLI_LOGGER_NAME = "image-upload.cli"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-upload",
        description="Image Upload - push images through the ingestion pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload a local photo using settings from IMAGE_UPLOAD_* variables
  image-upload upload ./photo.jpg

  # Override the bucket and return the client file name
  image-upload upload ./photo.jpg --bucket my-bucket --file-name site-42.jpg

  # Show version
  image-upload version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    upload_parser = subparsers.add_parser(
        "upload", help="Upload a local image through the pipeline"
    )
    upload_parser.add_argument("path", type=Path, help="Image file to upload")
    upload_parser.add_argument(
        "--file-name", default=None, help="File name hint sent with the request"
    )
    upload_parser.add_argument(
        "--content-type",
        default=None,
        help="Declared content type (guessed from the path by default)",
    )
    upload_parser.add_argument("--bucket", default=None, help="Override bucket name")
    upload_parser.add_argument(
        "--endpoint-url", default=None, help="Override AWS endpoint (e.g. LocalStack)"
    )
    upload_parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )

    subparsers.add_parser("version", help="Show version information")
    return parser


def encode_upload(path: Path, content_type: Optional[str] = None):
    """Encode a local file as a single-part multipart/form-data body."""
    if content_type is None:
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return encode_multipart_formdata(
        {"file": (path.name, path.read_bytes(), content_type)}
    )


def run_upload(args: argparse.Namespace) -> int:
    overrides = {}
    if args.bucket:
        overrides["bucket_name"] = args.bucket
    if args.endpoint_url:
        overrides["endpoint_url"] = args.endpoint_url
    if args.debug:
        overrides["log_level"] = "DEBUG"

    try:
        settings = load_settings(**overrides)
    except ConfigurationError as e:
        get_logger(CLI_LOGGER_NAME).error(f"Invalid configuration: {e.message}")
        return 1

    logger = get_logger(CLI_LOGGER_NAME, settings)
    logger.debug(f"Uploading {args.path} to bucket {settings.bucket_name}")

    try:
        body, content_type = encode_upload(args.path, args.content_type)
        pipeline = UploadPipelineFactory.create_pipeline(settings=settings)
        result = pipeline.upload(body, content_type, file_name=args.file_name)
    except OSError as e:
        logger.error(f"Cannot read {args.path}: {e}")
        return 1
    except ImageUploadError as e:
        logger.error(f"Upload failed: {e.message}")
        return 1

    print(json.dumps(result.to_response(), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the image-upload command-line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "upload":
        sys.exit(run_upload(args))

    elif args.command == "version":
        print("Image Upload CLI")
        print(f"Version {__version__}")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
