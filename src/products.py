import json
from pathlib import Path

from utils.logger import log

PRODUCTS_PATH = Path(__file__).parent / "data" / "products.json"


def load_products(path: Path = PRODUCTS_PATH) -> list:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def lambda_handler(event, context):
    products = load_products()
    log("products.served", count=len(products))
    return {
        "statusCode": 200,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(products),
    }
