import os


def get_gcp_credentials_path() -> str:
    """Return the path to GCP credentials if set via env/config.

    Precedence:
      1) GOOGLE_APPLICATION_CREDENTIALS env var (if it's a file)
      2) If env var points to a directory, look for sa.json inside it
      3) data/.gcp/sa.json under the working directory
      4) any JSON file inside data/.gcp/
    """
    path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if path:
        if os.path.isfile(path):
            return path
        elif os.path.isdir(path):
            sa_file = os.path.join(path, "sa.json")
            if os.path.isfile(sa_file):
                return sa_file
            found_file = _first_json_file(path)
            if found_file:
                return found_file

    default_dir = os.path.join(os.getcwd(), "data", ".gcp")
    default_path = os.path.join(default_dir, "sa.json")
    if os.path.isfile(default_path):
        return default_path

    if os.path.isdir(default_dir):
        found_file = _first_json_file(default_dir)
        if found_file:
            return found_file

    return ""


def _first_json_file(directory: str) -> str:
    try:
        json_files = sorted(f for f in os.listdir(directory) if f.endswith(".json"))
    except OSError:
        return ""
    for name in json_files:
        candidate = os.path.join(directory, name)
        if os.path.isfile(candidate):
            return candidate
    return ""
