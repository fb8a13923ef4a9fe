"""
Run the FastAPI backend server.
"""

import uvicorn
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workload_scheduler.core.config import DATA_FILE


if __name__ == "__main__":
    print("=" * 60)
    print("Course Workload Scheduler API Server")
    print("=" * 60)
    print("Starting server on http://localhost:8000")
    print("API Documentation: http://localhost:8000/docs")
    print(f"Data file: {DATA_FILE}")
    print("=" * 60)

    uvicorn.run(
        "workload_scheduler.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
