"""In-memory stand-in for the transaction backend.

Serves the REST surface the shell depends on (CRUD and CSV export under
/api/transactions) so the shell can be developed and tested without the
packaged Java service. Analysis endpoints are not provided, and ``/`` only
serves a placeholder page since the web frontend ships with the real backend.
"""
import argparse
import logging
import threading
from typing import Dict

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse

from golddesk.models import Transaction

app = FastAPI()

CSV_HEADER = "ID,Type,TradeTime,Weight,Amount,PricePerGram,Remark"

transactions: Dict[int, Transaction] = {}
next_id = 1
store_lock = threading.Lock()


def reset_store():
    global next_id
    with store_lock:
        transactions.clear()
        next_id = 1


INDEX_HTML = (
    "<!doctype html><html><head><title>Gold Trading (stand-in)</title></head>"
    "<body><h1>Gold Trading stand-in backend</h1>"
    "<p>The web frontend is not bundled with this server. "
    "API: <a href=\"/api/transactions\">/api/transactions</a></p></body></html>"
)


@app.get("/", response_class=HTMLResponse)
def index():
    return INDEX_HTML


@app.get("/api/transactions")
def list_transactions():
    with store_lock:
        return [t.to_wire() for t in transactions.values()]


@app.post("/api/transactions")
def add_transaction(transaction: Transaction):
    global next_id
    with store_lock:
        stored = transaction.model_copy(update={"id": next_id})
        transactions[next_id] = stored
        next_id += 1
    return stored.to_wire()


@app.put("/api/transactions/{transaction_id}")
def update_transaction(transaction_id: int, transaction: Transaction):
    with store_lock:
        if transaction_id not in transactions:
            raise HTTPException(status_code=404, detail=f"Transaction {transaction_id} not found")
        stored = transaction.model_copy(update={"id": transaction_id})
        transactions[transaction_id] = stored
    return stored.to_wire()


@app.delete("/api/transactions/{transaction_id}")
def delete_transaction(transaction_id: int):
    with store_lock:
        transactions.pop(transaction_id, None)
    return None


@app.get("/api/transactions/export/csv", response_class=PlainTextResponse)
def export_csv():
    lines = [CSV_HEADER + "\n"]
    with store_lock:
        for t in transactions.values():
            lines.append(
                f"{t.id},{t.type.value},{t.trade_time.isoformat()},"
                f"{t.weight:.2f},{t.amount:.2f},{t.price_per_gram:.2f},{t.remark or ''}\n"
            )
    return "".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Stand-in transaction backend")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host")
    parser.add_argument("--port", type=int, default=8080, help="Port")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    logging.info("Stand-in backend starting on %s:%d", args.host, args.port)

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level="warning",
        access_log=False,
    )


if __name__ == "__main__":
    main()
