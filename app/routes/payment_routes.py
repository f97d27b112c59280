from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from app.schemas.ledger_schema import (
    BalanceSummarySchema,
    BalanceTransactionSchema,
    WithdrawalRequestSchema,
)
from app.services import ledger_service, withdrawal_service
from app.services.profile_service import update_bank_account
from app.utils.authz import current_profile
from app.utils.pagination import page_args, paginate_query
from app.utils.response_formatter import success_response

bp = Blueprint("payments", __name__, url_prefix="/api/v1")

summary_schema = BalanceSummarySchema()
transaction_schema = BalanceTransactionSchema()
withdrawal_schema = WithdrawalRequestSchema()

RECENT_TRANSACTIONS = 10


@bp.route("/balance", methods=["GET"])
@jwt_required()
def balance():
    user = current_profile()
    summary = summary_schema.dump(ledger_service.get_balance_summary(user.id))
    recent = ledger_service.transactions_query(user.id).limit(RECENT_TRANSACTIONS).all()
    summary["recent_transactions"] = transaction_schema.dump(recent, many=True)
    return success_response(summary)


@bp.route("/balance", methods=["PATCH"])
@jwt_required()
def update_balance_settings():
    user = current_profile()
    data = request.get_json(silent=True) or {}
    update_bank_account(user, data.get("bankAccountNumber"))
    return success_response(
        summary_schema.dump(ledger_service.get_balance_summary(user.id)),
        message="Bank account updated",
    )


@bp.route("/balance/transactions", methods=["GET"])
@jwt_required()
def transactions():
    user = current_profile()
    page, limit = page_args()
    q = ledger_service.transactions_query(
        user.id,
        source=request.args.get("source"),
        transaction_type=request.args.get("type"),
    )
    items, pagination = paginate_query(q, page, limit)
    return success_response({
        "transactions": transaction_schema.dump(items, many=True),
        "pagination": pagination,
    })


@bp.route("/withdrawals", methods=["POST"])
@jwt_required()
def request_withdrawal():
    user = current_profile()
    data = request.get_json(silent=True) or {}
    wr = withdrawal_service.request_withdrawal(
        user,
        data.get("amount"),
        data.get("bankAccountNumber"),
    )
    return success_response({"withdrawal": withdrawal_schema.dump(wr)}, status=201)


@bp.route("/withdrawals", methods=["GET"])
@jwt_required()
def list_withdrawals():
    user = current_profile()
    page, limit = page_args()
    items, pagination = paginate_query(withdrawal_service.user_withdrawals_query(user), page, limit)
    return success_response({
        "withdrawals": withdrawal_schema.dump(items, many=True),
        "pagination": pagination,
    })
