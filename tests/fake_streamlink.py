"""Minimal stand-in for the streamlink CLI, driven by the stream URL argument."""
import signal
import sys
import time

def main():
    url = sys.argv[1] if len(sys.argv) > 1 else ""

    if url == "announce":
        print("[cli][info] Found matching plugin twitch", file=sys.stderr, flush=True)
        print("Player server started on port 51234", file=sys.stderr, flush=True)
    elif url == "announce-stdout":
        print("[cli][info] Starting server, access with one of:", flush=True)
        print("[cli][info]  http://127.0.0.1:40123/", flush=True)
    elif url == "stubborn":
        signal.signal(signal.SIGTERM, signal.SIG_IGN)
        print("Player server started on port 40999", file=sys.stderr, flush=True)
    elif url == "exit":
        print("error: No playable streams found on this URL", file=sys.stderr, flush=True)
        sys.exit(1)
    elif url == "chatty":
        # Enough output to fill an unread pipe before the announcement
        for i in range(20000):
            print(f"[stream.hls][debug] segment {i} " + "x" * 40, flush=False)
        sys.stdout.flush()
        print("Player server started on port 41000", file=sys.stderr, flush=True)

    # "silent" and every announcing mode keep running until terminated
    time.sleep(60)

if __name__ == "__main__":
    main()
