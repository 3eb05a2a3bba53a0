"""Bulk-upload local photos through the image upload endpoint.

Each file is pre-compressed on this side first (smaller uploads), then posted
to /api/upload-image; the server validates and re-optimizes it regardless.

Usage:
  python scripts/upload_property_images.py photos/*.jpg
  python scripts/upload_property_images.py --base-url https://api.example.com --no-compress a.png
"""
import argparse
import json
import mimetypes
import os
import sys

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.utils.client_compression import CompressionOptions, compress_image


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("paths", nargs="+", help="Image files to upload")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--max-size-mb", type=float, default=2)
    parser.add_argument("--quality", type=float, default=0.85)
    parser.add_argument("--format", dest="output_format", default="jpeg", choices=["jpeg", "webp", "png"])
    parser.add_argument("--no-compress", action="store_true", help="Send the original bytes")
    args = parser.parse_args()

    options = CompressionOptions(
        quality=args.quality,
        max_size_mb=args.max_size_mb,
        output_format=args.output_format,
    )
    urls = []
    with httpx.Client(base_url=args.base_url, timeout=60.0) as client:
        for path in args.paths:
            with open(path, "rb") as f:
                data = f.read()
            filename = os.path.basename(path)
            content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

            if not args.no_compress:
                result = compress_image(data, filename, content_type, options)
                print(
                    f"{filename}: {result.original_size} -> {result.compressed_size} bytes "
                    f"({result.reduction_percent}%)"
                )
                data, filename, content_type = result.data, result.filename, result.content_type

            response = client.post("/api/upload-image", files={"file": (filename, data, content_type)})
            payload = response.json()
            if response.status_code != 200 or payload.get("error"):
                print(f"  ! {response.status_code} {payload.get('error')}: {payload.get('details', '')}")
            print(f"  -> {payload.get('url')}")
            if payload.get("success"):
                urls.append(payload["url"])

    print(json.dumps({"images": urls}, indent=2))


if __name__ == "__main__":
    main()
