"""Run script with proper environment loading"""
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(Path(__file__).resolve().parent))

from dotenv import load_dotenv

load_dotenv(BASE_DIR / ".env", override=True)

if __name__ == "__main__":
    import uvicorn
    from carebrain.core.config import get_settings

    settings = get_settings()

    from carebrain.main import app

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )
