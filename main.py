#!/usr/bin/env python3
"""
rPPG Contactless Vitals — API server
======================================
Serves the FastAPI app with Uvicorn.

    python main.py                      # 0.0.0.0:8000
    python main.py --port 9000 --log-level debug

⚠️  DISCLAIMER: This is a WELLNESS ESTIMATION tool, NOT a medical device.
    Heart rate, respiration rate and SpO2 are ESTIMATES derived from
    remote photoplethysmography (rPPG).  Do NOT use these readings for
    clinical diagnosis or treatment decisions.
"""

import argparse

import uvicorn

from api.app import create_app
from config import API_HOST, API_PORT


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="rPPG Contactless Vitals API server")
    parser.add_argument("--host", default=API_HOST)
    parser.add_argument("--port", type=int, default=API_PORT)
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    args = parser.parse_args(argv)

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
