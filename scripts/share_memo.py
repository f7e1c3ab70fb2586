"""Upload a recording, wait for its transcript, and print the share link."""

import argparse
import mimetypes
import sys
from pathlib import Path

import httpx

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.client.api_client import API_URL, MemoClient, TranscriptTimeoutError


def format_timestamp(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def main() -> int:
    parser = argparse.ArgumentParser(description="Share a voice memo")
    parser.add_argument("audio", type=Path, help="Audio file to upload")
    parser.add_argument("--api-url", default=API_URL, help="Backend base URL")
    parser.add_argument("--no-wait", action="store_true", help="Print the link without waiting for the transcript")
    parser.add_argument("--timeout", type=float, default=300.0, help="Seconds to wait for transcription")
    parser.add_argument("--ask", help="Question to ask once the transcript is ready")
    args = parser.parse_args()

    if not args.audio.is_file():
        print(f"Error: {args.audio} not found")
        return 1

    content_type = mimetypes.guess_type(args.audio.name)[0] or "audio/webm"
    client = MemoClient(http=httpx.Client(base_url=args.api_url, timeout=60.0))

    uploaded = client.upload(args.audio.read_bytes(), filename=args.audio.name, content_type=content_type)
    print(f"Uploaded {args.audio.name} as {uploaded['id']}")
    print(f"Share: {uploaded['shareUrl']}")
    if args.no_wait:
        return 0

    try:
        transcript = client.wait_for_transcript(uploaded["id"], timeout=args.timeout)
    except TranscriptTimeoutError:
        print("Transcript still processing; check back later.")
        return 1

    status = transcript["status"]
    if status != "ready":
        print(f"Transcript {status}.")
        return 1 if status == "error" else 0

    print(f"\nTranscript: {len(transcript['words'])} words, {len(transcript['lines'])} lines")
    for chapter in transcript["chapters"]:
        print(f"  [{format_timestamp(chapter['start'])}] {chapter['title']}")

    comments = client.list_comments(uploaded["id"])
    if comments:
        print("\nAuto-comments:")
        for comment in comments:
            print(f"  - {comment['text']}")

    if args.ask:
        print(f"\nQ: {args.ask}")
        print(f"A: {client.ask(uploaded['id'], args.ask)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
