import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from app.core.config import Settings
from app.core.errors import NotFoundError, StoreError, ValidationError
from app.utils.dates import to_iso, utcnow

logger = logging.getLogger(__name__)

# Guard items reserve a category for exactly one active budget per user.
BUDGET_GUARD_PREFIX = "ACTIVE#"

# Conditional writes tried before a goal contribution gives up.
GOAL_ADD_ATTEMPTS = 5


class DynamoStore:
    """
    Explicitly constructed handle over the four DynamoDB tables.

    Every read and write is keyed by ``user_id`` (the partition key of the
    transactions, budgets and goals tables), so a record owned by another
    user is simply not found.
    """

    def __init__(self, config: Settings):
        self._config = config
        self._dynamodb = None
        self.users_table = None
        self.transactions_table = None
        self.budgets_table = None
        self.goals_table = None

    # Lifecycle

    def init(self) -> "DynamoStore":
        self._dynamodb = boto3.resource(
            "dynamodb",
            region_name=self._config.DYNAMO_REGION,
            endpoint_url=self._config.DYNAMO_ENDPOINT_URL,
        )
        self.users_table = self._dynamodb.Table(self._config.DYNAMO_TABLE_USERS)
        self.transactions_table = self._dynamodb.Table(self._config.DYNAMO_TABLE_TRANSACTIONS)
        self.budgets_table = self._dynamodb.Table(self._config.DYNAMO_TABLE_BUDGETS)
        self.goals_table = self._dynamodb.Table(self._config.DYNAMO_TABLE_GOALS)
        if self._config.DYNAMO_CREATE_TABLES:
            self.create_tables()
        logger.info("DynamoDB store initialised (region=%s)", self._config.DYNAMO_REGION)
        return self

    def close(self) -> None:
        if self._dynamodb is not None:
            self._dynamodb.meta.client.close()
            self._dynamodb = None
            logger.info("DynamoDB store closed")

    @property
    def client(self):
        return self._dynamodb.meta.client

    def create_tables(self) -> None:
        """Create any missing table. Intended for local development and tests."""
        definitions = [
            (self._config.DYNAMO_TABLE_TRANSACTIONS, "transaction_id"),
            (self._config.DYNAMO_TABLE_BUDGETS, "budget_id"),
            (self._config.DYNAMO_TABLE_GOALS, "goal_id"),
        ]
        self._create_table(
            self._config.DYNAMO_TABLE_USERS,
            KeySchema=[{"AttributeName": "user_id", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": "user_id", "AttributeType": "S"},
                {"AttributeName": "email", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "email-index",
                    "KeySchema": [{"AttributeName": "email", "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
        )
        for name, sort_key in definitions:
            self._create_table(
                name,
                KeySchema=[
                    {"AttributeName": "user_id", "KeyType": "HASH"},
                    {"AttributeName": sort_key, "KeyType": "RANGE"},
                ],
                AttributeDefinitions=[
                    {"AttributeName": "user_id", "AttributeType": "S"},
                    {"AttributeName": sort_key, "AttributeType": "S"},
                ],
            )

    def _create_table(self, name: str, **kwargs) -> None:
        try:
            table = self._dynamodb.create_table(TableName=name, BillingMode="PAY_PER_REQUEST", **kwargs)
            table.wait_until_exists()
            logger.info("Created table %s", name)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceInUseException":
                raise

    # Users

    def get_user_by_email(self, email: str) -> Optional[dict]:
        """Query the Users table by email through the email-index GSI."""
        try:
            response = self.users_table.query(
                IndexName="email-index",
                KeyConditionExpression=Key("email").eq(email.lower()),
            )
        except ClientError as e:
            raise _store_error("get_user_by_email", e)
        return _from_dynamo(response["Items"][0]) if response["Items"] else None

    def get_user_by_id(self, user_id: str) -> Optional[dict]:
        try:
            response = self.users_table.get_item(Key={"user_id": user_id})
        except ClientError as e:
            raise _store_error("get_user_by_id", e)
        item = response.get("Item")
        return _from_dynamo(item) if item else None

    def put_user(self, user_item: dict) -> dict:
        user_item = dict(user_item, email=user_item["email"].lower())
        try:
            self.users_table.put_item(Item=_convert_for_dynamo(user_item))
        except ClientError as e:
            raise _store_error("put_user", e)
        return user_item

    def update_user(self, user_id: str, updates: dict) -> Optional[dict]:
        if "email" in updates:
            updates = dict(updates, email=updates["email"].lower())
        return self._update_item(self.users_table, {"user_id": user_id}, "user_id", updates)

    # Transactions

    def list_transactions(
        self,
        user_id: str,
        category: Optional[str] = None,
        division: Optional[str] = None,
        tx_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[dict]:
        """All of a user's transactions matching the filters, newest effective date first."""
        conditions = []
        if category:
            conditions.append(Attr("category").eq(category))
        if division:
            conditions.append(Attr("division").eq(division))
        if tx_type:
            conditions.append(Attr("type").eq(tx_type))
        if start:
            conditions.append(Attr("date").gte(to_iso(start)))
        if end:
            conditions.append(Attr("date").lte(to_iso(end)))

        items = self._query_owner(self.transactions_table, user_id, conditions, "list_transactions")
        return sorted(items, key=lambda item: item["date"], reverse=True)

    def get_transaction(self, user_id: str, transaction_id: str) -> Optional[dict]:
        return self._get_item(
            self.transactions_table, {"user_id": user_id, "transaction_id": transaction_id}, "get_transaction"
        )

    def put_transaction(self, item: dict) -> dict:
        try:
            self.transactions_table.put_item(Item=_convert_for_dynamo(item))
        except ClientError as e:
            raise _store_error("put_transaction", e)
        return _from_dynamo(_convert_for_dynamo(item))

    def update_transaction(self, user_id: str, transaction_id: str, updates: dict) -> Optional[dict]:
        return self._update_item(
            self.transactions_table,
            {"user_id": user_id, "transaction_id": transaction_id},
            "transaction_id",
            updates,
        )

    def delete_transaction(self, user_id: str, transaction_id: str) -> bool:
        return self._delete_item(
            self.transactions_table, {"user_id": user_id, "transaction_id": transaction_id}, "delete_transaction"
        )

    # Budgets

    def list_budgets(self, user_id: str) -> List[dict]:
        items = self._query_owner(self.budgets_table, user_id, [], "list_budgets")
        budgets = [item for item in items if not item["budget_id"].startswith(BUDGET_GUARD_PREFIX)]
        return sorted(budgets, key=lambda item: item.get("created_at", ""), reverse=True)

    def get_budget(self, user_id: str, budget_id: str) -> Optional[dict]:
        if budget_id.startswith(BUDGET_GUARD_PREFIX):
            return None
        return self._get_item(self.budgets_table, {"user_id": user_id, "budget_id": budget_id}, "get_budget")

    def create_budget(self, item: dict) -> dict:
        """
        Insert a budget. An active budget is written together with its
        category guard in one transaction, so a second active budget for the
        same category fails even under concurrent creates.
        """
        if not item.get("is_active", True):
            try:
                self.budgets_table.put_item(Item=_convert_for_dynamo(item))
            except ClientError as e:
                raise _store_error("create_budget", e)
            return _from_dynamo(_convert_for_dynamo(item))

        table_name = self._config.DYNAMO_TABLE_BUDGETS
        self._transact(
            [
                {
                    "Put": {
                        "TableName": table_name,
                        "Item": _convert_for_dynamo(item),
                        "ConditionExpression": "attribute_not_exists(budget_id)",
                    }
                },
                self._put_guard(item["user_id"], item["category"], item["budget_id"]),
            ],
            "create_budget",
        )
        return _from_dynamo(_convert_for_dynamo(item))

    def update_budget(self, current: dict, updates: dict) -> Optional[dict]:
        """
        Apply ``updates`` to the budget ``current`` (as previously read).
        Guard items follow the budget when it is activated, deactivated or
        moved to another category.
        """
        user_id, budget_id = current["user_id"], current["budget_id"]
        was_active, old_category = bool(current.get("is_active")), current["category"]
        now_active = bool(updates.get("is_active", was_active))
        new_category = updates.get("category", old_category)

        if (was_active, old_category) == (now_active, new_category) or not (was_active or now_active):
            return self._update_item(
                self.budgets_table, {"user_id": user_id, "budget_id": budget_id}, "budget_id", updates
            )

        expression, names, values = _update_expression(updates)
        names["#active"] = "is_active"
        values[":was_active"] = current.get("is_active", False)
        actions = [
            {
                "Update": {
                    "TableName": self._config.DYNAMO_TABLE_BUDGETS,
                    "Key": {"user_id": user_id, "budget_id": budget_id},
                    "UpdateExpression": expression,
                    "ExpressionAttributeNames": names,
                    "ExpressionAttributeValues": _convert_for_dynamo(values),
                    "ConditionExpression": "attribute_exists(budget_id) AND #active = :was_active",
                }
            }
        ]
        if was_active:
            actions.append(self._delete_guard(user_id, old_category))
        if now_active:
            actions.append(self._put_guard(user_id, new_category, budget_id))
        self._transact(actions, "update_budget")
        return self.get_budget(user_id, budget_id)

    def delete_budget(self, user_id: str, budget_id: str) -> bool:
        current = self.get_budget(user_id, budget_id)
        if not current:
            return False
        if not current.get("is_active"):
            return self._delete_item(
                self.budgets_table, {"user_id": user_id, "budget_id": budget_id}, "delete_budget"
            )
        self._transact(
            [
                {
                    "Delete": {
                        "TableName": self._config.DYNAMO_TABLE_BUDGETS,
                        "Key": {"user_id": user_id, "budget_id": budget_id},
                        "ConditionExpression": "attribute_exists(budget_id)",
                    }
                },
                self._delete_guard(user_id, current["category"]),
            ],
            "delete_budget",
        )
        return True

    def _put_guard(self, user_id: str, category: str, budget_id: str) -> dict:
        return {
            "Put": {
                "TableName": self._config.DYNAMO_TABLE_BUDGETS,
                "Item": {
                    "user_id": user_id,
                    "budget_id": f"{BUDGET_GUARD_PREFIX}{category}",
                    "holder": budget_id,
                },
                "ConditionExpression": "attribute_not_exists(budget_id)",
            }
        }

    def _delete_guard(self, user_id: str, category: str) -> dict:
        return {
            "Delete": {
                "TableName": self._config.DYNAMO_TABLE_BUDGETS,
                "Key": {"user_id": user_id, "budget_id": f"{BUDGET_GUARD_PREFIX}{category}"},
            }
        }

    def _transact(self, actions: List[dict], operation: str) -> None:
        """
        Run a budget write transaction. A failed guard put means the category
        already has an active budget; any other failed condition means the
        budget was deleted or changed since it was read.
        """
        try:
            self.client.transact_write_items(TransactItems=actions)
        except ClientError as e:
            if e.response["Error"]["Code"] != "TransactionCanceledException":
                raise _store_error(operation, e)
            logger.info("%s cancelled: %s", operation, e.response["Error"].get("Message"))
            if _guard_conflict(actions, e.response.get("CancellationReasons")):
                raise ValidationError("Budget already exists for this category")
            raise NotFoundError("Budget not found")

    # Goals

    def list_goals(self, user_id: str) -> List[dict]:
        items = self._query_owner(self.goals_table, user_id, [], "list_goals")
        return sorted(items, key=lambda item: item.get("created_at", ""), reverse=True)

    def get_goal(self, user_id: str, goal_id: str) -> Optional[dict]:
        return self._get_item(self.goals_table, {"user_id": user_id, "goal_id": goal_id}, "get_goal")

    def put_goal(self, item: dict) -> dict:
        try:
            self.goals_table.put_item(Item=_convert_for_dynamo(item))
        except ClientError as e:
            raise _store_error("put_goal", e)
        return _from_dynamo(_convert_for_dynamo(item))

    def update_goal(self, user_id: str, goal_id: str, updates: dict) -> Optional[dict]:
        return self._update_item(self.goals_table, {"user_id": user_id, "goal_id": goal_id}, "goal_id", updates)

    def add_to_goal(
        self,
        user_id: str,
        goal_id: str,
        amount: float,
        reached: Optional[Callable[[dict], bool]] = None,
    ) -> Optional[dict]:
        """
        Add ``amount`` to ``current_amount`` and, when ``reached`` says the new
        amount completes the goal, set ``is_completed`` in the same write.

        The write is conditioned on the amounts that were read, so a
        concurrent change makes it fail and the read is retried. Returns the
        updated goal, or None when it does not exist.
        """
        key = {"user_id": user_id, "goal_id": goal_id}
        for _ in range(GOAL_ADD_ATTEMPTS):
            try:
                item = self.goals_table.get_item(Key=key, ConsistentRead=True).get("Item")
            except ClientError as e:
                raise _store_error("add_to_goal", e)
            if not item:
                return None

            current = item.get("current_amount", Decimal(0))
            new_amount = current + _convert_for_dynamo(float(amount))
            completed = bool(item.get("is_completed")) or bool(
                reached and reached(_from_dynamo({**item, "current_amount": new_amount}))
            )
            try:
                response = self.goals_table.update_item(
                    Key=key,
                    UpdateExpression="SET current_amount = :new, is_completed = :completed, updated_at = :now",
                    ConditionExpression="current_amount = :expected AND target_amount = :target",
                    ExpressionAttributeValues=_convert_for_dynamo(
                        {
                            ":new": new_amount,
                            ":completed": completed,
                            ":now": utcnow(),
                            ":expected": current,
                            ":target": item.get("target_amount"),
                        }
                    ),
                    ReturnValues="ALL_NEW",
                )
            except ClientError as e:
                if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                    continue
                raise _store_error("add_to_goal", e)
            if completed and not item.get("is_completed"):
                logger.info("Goal %s completed for user %s", goal_id, user_id)
            return _from_dynamo(response["Attributes"])

        logger.error("add_to_goal gave up on goal %s after %d conflicting writes", goal_id, GOAL_ADD_ATTEMPTS)
        raise StoreError("add_to_goal failed")

    def delete_goal(self, user_id: str, goal_id: str) -> bool:
        return self._delete_item(self.goals_table, {"user_id": user_id, "goal_id": goal_id}, "delete_goal")

    # Shared helpers

    def _query_owner(self, table, user_id: str, conditions: list, operation: str) -> List[dict]:
        kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("user_id").eq(user_id)}
        if conditions:
            filter_expression = conditions[0]
            for condition in conditions[1:]:
                filter_expression = filter_expression & condition
            kwargs["FilterExpression"] = filter_expression

        items: List[dict] = []
        try:
            while True:
                response = table.query(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            raise _store_error(operation, e)
        return [_from_dynamo(item) for item in items]

    def _get_item(self, table, key: dict, operation: str) -> Optional[dict]:
        try:
            response = table.get_item(Key=key)
        except ClientError as e:
            raise _store_error(operation, e)
        item = response.get("Item")
        return _from_dynamo(item) if item else None

    def _update_item(self, table, key: dict, id_attribute: str, updates: dict) -> Optional[dict]:
        """
        Apply partial updates to an existing item. Returns the updated item,
        or None when no item exists under ``key``.
        """
        if not updates:
            return self._get_item(table, key, f"update {table.name}")

        expression, names, values = _update_expression(updates)
        names["#id"] = id_attribute
        try:
            response = table.update_item(
                Key=key,
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(#id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=_convert_for_dynamo(values),
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            raise _store_error(f"update {table.name}", e)
        attributes = response.get("Attributes")
        return _from_dynamo(attributes) if attributes else None

    def _delete_item(self, table, key: dict, operation: str) -> bool:
        try:
            response = table.delete_item(Key=key, ReturnValues="ALL_OLD")
        except ClientError as e:
            raise _store_error(operation, e)
        return "Attributes" in response


def _update_expression(updates: dict):
    parts = []
    names = {}
    values = {}
    for idx, (attr, value) in enumerate(updates.items()):
        names[f"#f{idx}"] = attr
        values[f":v{idx}"] = value
        parts.append(f"#f{idx} = :v{idx}")
    return "SET " + ", ".join(parts), names, values


def _is_guard_put(action: dict) -> bool:
    budget_id = action.get("Put", {}).get("Item", {}).get("budget_id", "")
    return budget_id.startswith(BUDGET_GUARD_PREFIX)


def _guard_conflict(actions: List[dict], reasons: Optional[List[dict]]) -> bool:
    if not reasons:
        return any(_is_guard_put(action) for action in actions)
    return any(
        _is_guard_put(action) and reason.get("Code") == "ConditionalCheckFailed"
        for action, reason in zip(actions, reasons)
    )


def _store_error(operation: str, error: ClientError) -> StoreError:
    logger.error("%s failed: %s", operation, error.response["Error"].get("Message"))
    return StoreError(f"{operation} failed")


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal and datetimes to ISO strings for
    DynamoDB compatibility.
    """
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, (datetime, date)):
        return to_iso(obj)
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
