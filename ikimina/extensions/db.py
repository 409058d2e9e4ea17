from pymongo import MongoClient
from redis import Redis
from rq import Queue


class MongoDB:
    def __init__(self):
        self.client = None
        self.db = None

    def init_app(self, app, client=None):
        self.client = client or MongoClient(app.config["MONGO_URI"])
        self.db = self.client[app.config["DB_NAME"]]
        app.mongo = self.db

        # -------------------------------------------------
        # Indexes (idempotent, run on startup)
        # -------------------------------------------------
        transactions = self.db.contribution_transactions
        transactions.create_index("reference", unique=True)
        transactions.create_index([("member_id", 1), ("group_id", 1), ("created_at", -1)])
        transactions.create_index([("status", 1), ("created_at", -1)])
        transactions.create_index("gateway_transaction_id", sparse=True)

    def get_collection(self, name):
        if self.db is None:
            raise RuntimeError("MongoDB not initialized")
        return self.db[name]


class RedisConnection:
    def __init__(self):
        self.connection = None
        self.queue = None

    def init_app(self, app, connection=None):
        self.connection = connection or Redis(
            host=app.config["REDIS_HOST"],
            port=app.config["REDIS_PORT"],
        )
        self.queue = Queue(app.config["SMS_QUEUE_NAME"], connection=self.connection)
        app.queue = self.queue


# Export the instances
db = MongoDB()
redis_connection = RedisConnection()
