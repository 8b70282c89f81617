#!/usr/bin/env python3
"""
GithubIssue API server entry point.

Usage:
    python backend/server.py                        # 127.0.0.1:8000 with auto-reload
    python backend/server.py --host 0.0.0.0 --port 8080 --no-reload
    uvicorn backend.app:app --reload
"""

import argparse


def serve(host: str = "127.0.0.1", port: int = 8000, reload: bool = True) -> None:
    """Run the record API under uvicorn."""
    import uvicorn
    uvicorn.run(
        "backend.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


def main():
    """Launch the FastAPI backend server."""
    parser = argparse.ArgumentParser(description="GithubIssue API Server")
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the API server on (default: 8000)"
    )
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable auto-reload (use for production)"
    )
    
    args = parser.parse_args()
    
    print(f"GithubIssue API at http://{args.host}:{args.port} (docs: /docs)")
    serve(args.host, args.port, reload=not args.no_reload)


if __name__ == "__main__":
    main()
