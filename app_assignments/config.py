import os
import dotenv

dotenv.load_dotenv()

TENANT_ID = os.getenv("AZ_TENANT_ID", "")
CLIENT_ID = os.getenv("AZ_CLIENT_ID", "")
CLIENT_SECRET = os.getenv("AZ_CLIENT_SECRET", "")
GRAPH_TOKEN = os.getenv("GRAPH_TOKEN")

GRAPH_BASE = os.getenv("GRAPH_BASE", "https://graph.microsoft.com/v1.0")
GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]
GRAPH_TIMEOUT = int(os.getenv("GRAPH_TIMEOUT", "60"))
GRAPH_MAX_RETRIES = int(os.getenv("GRAPH_MAX_RETRIES", "3"))
GRAPH_PAGE_SIZE = int(os.getenv("GRAPH_PAGE_SIZE", "999"))

MENU_PAGE_SIZE = int(os.getenv("MENU_PAGE_SIZE", "10"))
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "./outputs")
