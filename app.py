import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional
from flask import Flask, request, jsonify

from receipts import ReceiptNotFoundError, ReceiptStore, parse_receipt
from scoring import InvalidReceiptError, calculate_breakdown, calculate_points

logger = logging.getLogger(__name__)

HOST = os.environ.get("RECEIPT_HOST", "0.0.0.0")
PORT = int(os.environ.get("RECEIPT_PORT", "5000"))
LOG_LEVEL = os.environ.get("RECEIPT_LOG_LEVEL", "INFO")
LOG_FILE = os.environ.get("RECEIPT_LOG_FILE")

USAGE = ("Welcome to the receipt processor API!\n\n"
         "Please use the following endpoints to interact with the API:\n\n"
         "POST /receipts/process\n"
         "GET  /receipts/<id>/points for a receipt's point total via the rule set\n"
         "GET  /receipts/<id>/breakdown for a line-by-line breakdown of a receipt's points\n"
         "GET  /debug for a human readable breakdown of every processed receipt\n")


def configure_logging(level: str = LOG_LEVEL, log_file: str = LOG_FILE):
    """ Logs to stderr, and additionally to a rotating file when one is configured """
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(RotatingFileHandler(filename=log_file, maxBytes=1024 * 1024, backupCount=3))
    root = logging.getLogger()
    root.setLevel(level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)


def create_app(store: Optional[ReceiptStore] = None, config: Optional[dict] = None) -> Flask:
    """
    Builds the Flask application. Routes close over `store`, so tests can
    inject their own; a fresh in-memory store is used otherwise.
    """
    app = Flask(__name__)
    if config:
        app.config.update(config)
    store = store if store is not None else ReceiptStore()

    @app.route('/', methods=['GET'])
    def usage():
        return USAGE, 200, {"Content-Type": "text/plain; charset=utf-8"}

    @app.route('/receipts/process', methods=['POST'])
    def process_receipt():
        """
        Router for receipt processing requests. The input JSON is decoded and
        validated; accepted receipts are stored and their generated id returned.

        Returns:
            400 Error if the input JSON is malformed or the receipt fails validation
            200 OK and generated receipt id if the receipt is accepted
        """
        payload = request.get_json(silent=True)
        try:
            receipt_id = store.submit(parse_receipt(payload))
        except InvalidReceiptError as e:
            logger.warning("Receipt rejected: %s", e.problems)
            return jsonify({"error": str(e), "problems": e.problems}), 400
        except ValueError as e:
            logger.warning("Malformed receipt: %s", e)
            return jsonify({"error": str(e)}), 400
        else:
            return jsonify({"id": receipt_id})

    @app.route('/receipts/<receipt_id>/points', methods=['GET'])
    def get_points(receipt_id):
        """
        Returns:
            404 Error if the receipt id is not found
            200 OK and the points for the receipt, recalculated on every request
        """
        try:
            receipt = store.get(receipt_id)
        except ReceiptNotFoundError as e:
            logger.error("Receipt not found with ID: %s", receipt_id)
            return jsonify({"error": str(e)}), 404
        return jsonify({"points": calculate_points(receipt)})

    @app.route('/receipts/<receipt_id>/breakdown', methods=['GET'])
    def get_breakdown(receipt_id):
        """
        Returns:
            404 Error if the receipt id is not found
            200 OK and the lines explaining each rule's points, ending with the total
        """
        try:
            receipt = store.get(receipt_id)
        except ReceiptNotFoundError as e:
            logger.error("Receipt not found with ID: %s", receipt_id)
            return jsonify({"error": str(e)}), 404
        return jsonify({"breakdown": calculate_breakdown(receipt)})

    @app.route('/debug', methods=['GET'])
    def debug():
        """ Plain-text listing of every stored receipt id followed by its breakdown """
        receipts = store.snapshot()
        if not receipts:
            body = "No receipts yet"
        else:
            body = "\n\n".join(receipt_id + "\n" + "\n".join(calculate_breakdown(receipt))
                               for receipt_id, receipt in receipts)
        return body, 200, {"Content-Type": "text/plain; charset=utf-8"}

    return app


flask_app = create_app()


if __name__ == '__main__':
    configure_logging()
    flask_app.run(host=HOST, port=PORT, threaded=True)
    # setting threaded=True allows Flask to concurrently handle requests
