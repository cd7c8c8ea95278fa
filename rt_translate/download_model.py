import io
import logging
import os
import zipfile

import requests

logger = logging.getLogger("rt_translate")

DEFAULT_MODEL_URL = "https://alphacephei.com/vosk/models/vosk-model-small-en-us-0.15.zip"
DEFAULT_OUTPUT_DIR = "models"


def download_vosk_model(url: str = DEFAULT_MODEL_URL, output_dir: str = DEFAULT_OUTPUT_DIR, timeout: float = 300.0) -> str:
    """Fetch and unpack a Vosk model archive. Returns the model directory to put in VOSK_MODEL_PATH."""
    os.makedirs(output_dir, exist_ok=True)
    logger.info("model.download url=%s", url)
    r = requests.get(url, timeout=timeout)
    r.raise_for_status()
    with zipfile.ZipFile(io.BytesIO(r.content)) as z:
        top_dirs = {name.split("/", 1)[0] for name in z.namelist() if name.strip("/")}
        z.extractall(output_dir)
    model_dir = os.path.join(output_dir, sorted(top_dirs)[0]) if len(top_dirs) == 1 else output_dir
    logger.info("model.extracted path=%s", model_dir)
    return model_dir
