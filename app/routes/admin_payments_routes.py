from flask import Blueprint, request, current_app

from app.schemas.ledger_schema import AdminWithdrawalRequestSchema, BalanceTransactionSchema
from app.schemas.profile_schema import ProfileSchema
from app.services import ledger_service, withdrawal_service
from app.services.profile_service import deactivate_profile
from app.utils.authz import admin_required
from app.utils.pagination import page_args, paginate_query
from app.utils.response_formatter import success_response

bp = Blueprint("admin_payments", __name__, url_prefix="/api/v1/admin")

withdrawal_schema = AdminWithdrawalRequestSchema()
transaction_schema = BalanceTransactionSchema()
profile_schema = ProfileSchema()


def _audit_row(result):
    return {
        "user_id": result["user_id"],
        "balance": float(result["balance"]),
        "ledger_sum": float(result["ledger_sum"]),
        "entries": result["entries"],
        "broken_entries": result["broken_entries"],
        "consistent": result["consistent"],
    }


# ==========================================================
#  GET /admin/withdrawals
#  Filters:
#    page, limit
#    status=pending|approved|completed|rejected
#    search (name, email or username)
# ==========================================================
@bp.route("/withdrawals", methods=["GET"])
@admin_required
def admin_list_withdrawals(admin):
    page, limit = page_args()
    q = withdrawal_service.admin_withdrawals_query(
        admin,
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    items, pagination = paginate_query(q, page, limit)
    return success_response({
        "requests": withdrawal_schema.dump(items, many=True),
        "pagination": pagination,
    })


# ==========================================================
#  POST /admin/withdrawals/<id>/approve
# ==========================================================
@bp.route("/withdrawals/<wid>/approve", methods=["POST"])
@admin_required
def admin_approve_withdrawal(wid, admin):
    data = request.get_json(silent=True) or {}
    wr = withdrawal_service.approve_withdrawal(wid, admin, notes=data.get("adminNotes"))
    current_app.logger.info("Withdrawal %s approved by %s", wid, admin.id)
    return success_response({"withdrawal": withdrawal_schema.dump(wr)}, message="Withdrawal approved")


# ==========================================================
#  POST /admin/withdrawals/<id>/complete
# ==========================================================
@bp.route("/withdrawals/<wid>/complete", methods=["POST"])
@admin_required
def admin_complete_withdrawal(wid, admin):
    wr = withdrawal_service.complete_withdrawal(wid, admin)
    return success_response({"withdrawal": withdrawal_schema.dump(wr)}, message="Withdrawal completed")


# ==========================================================
#  POST /admin/withdrawals/<id>/reject
# ==========================================================
@bp.route("/withdrawals/<wid>/reject", methods=["POST"])
@admin_required
def admin_reject_withdrawal(wid, admin):
    data = request.get_json(silent=True) or {}
    wr = withdrawal_service.reject_withdrawal(wid, admin, data.get("adminNotes"))
    return success_response({"withdrawal": withdrawal_schema.dump(wr)}, message="Withdrawal rejected")


# ==========================================================
#  POST /admin/users/<id>/balance-adjustments
# ==========================================================
@bp.route("/users/<uid>/balance-adjustments", methods=["POST"])
@admin_required
def admin_adjust_balance(uid, admin):
    data = request.get_json(silent=True) or {}
    tx = ledger_service.adjust_balance(
        admin,
        uid,
        data.get("amount"),
        data.get("direction"),
        description=data.get("description"),
    )
    return success_response({"transaction": transaction_schema.dump(tx)}, status=201)


# ==========================================================
#  POST /admin/users/<id>/deactivate
# ==========================================================
@bp.route("/users/<uid>/deactivate", methods=["POST"])
@admin_required
def admin_deactivate_user(uid, admin):
    user = deactivate_profile(admin, uid)
    return success_response({"user": profile_schema.dump(user)}, message="User deactivated")


# ==========================================================
#  GET /admin/ledger/audit[?user_id=]
# ==========================================================
@bp.route("/ledger/audit", methods=["GET"])
@admin_required
def admin_ledger_audit(admin):
    uid = request.args.get("user_id")
    results = [ledger_service.verify_ledger(uid)] if uid else ledger_service.audit_all()
    rows = [_audit_row(r) for r in results]
    return success_response({
        "results": rows,
        "inconsistent": [r["user_id"] for r in rows if not r["consistent"]],
    })
