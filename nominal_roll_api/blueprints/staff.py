from flask import Blueprint, current_app, request, send_from_directory

from nominal_roll_api.common.auth import current_user, requires_admin, requires_roles
from nominal_roll_api.common.errors import Forbidden, ValidationFailed
from nominal_roll_api.common.http import ok, json_body
from nominal_roll_api.common.paging import page_size, text_q
from nominal_roll_api.common.rows import staff_row, pull_row
from nominal_roll_api.services import approval_ledger, profile_images
from nominal_roll_api.services import staff_directory as directory
from nominal_roll_api.services import staff_lifecycle as lifecycle
from nominal_roll_api.services.access import actor_staff, can_manage_school, scope_emiscode

bp = Blueprint("staff", __name__, url_prefix="/api/v1/staff")
files_bp = Blueprint("files", __name__, url_prefix="/files")


def _rows_with_status(items):
    derived = approval_ledger.derive_many(items)
    return [dict(staff_row(x), approval_status=derived[x.id].value) for x in items]


def _can_view(actor, x) -> bool:
    return can_manage_school(actor, x.emiscode) or bool(actor.staff_id and actor.staff_id == x.staff_id)


# ---------- lists ----------

@bp.get("")
@requires_admin
def list_staff():
    actor = current_user()
    school = scope_emiscode(actor, request.args.get("emiscode"))
    items = directory.staff_by_emiscode(school) if school is not None else directory.all_active_staff()
    return ok(_rows_with_status(items), total=len(items), emiscode=school)


@bp.get("/search")
@requires_admin
def search():
    page, size = page_size()
    rows, has_next = directory.search_staff(page, size, text_q())
    return ok([staff_row(x) for x in rows], page=page, size=size, has_next_page=has_next)


@bp.get("/schools")
@requires_roles()
def schools():
    return ok(directory.distinct_schools())


@bp.get("/archived")
@requires_admin
def archived():
    actor = current_user()
    school = scope_emiscode(actor, request.args.get("emiscode"))
    return ok([staff_row(x) for x in directory.archived_staff(school)])


@bp.get("/master/<staff_id>")
@requires_admin
def find_master(staff_id):
    """Active record anywhere in the district, for the pull screen."""
    x = directory.find_in_master_list(staff_id)
    return ok(staff_row(x))


@bp.get("/<staff_id>")
@requires_roles()
def get_one(staff_id):
    actor = current_user()
    x = directory.get_by_staff_id(staff_id)
    if not _can_view(actor, x):
        raise Forbidden("You cannot view this record.")
    return ok(dict(staff_row(x), approval_status=approval_ledger.status_for(x).value))


# ---------- create / edit ----------

@bp.post("")
@requires_admin
def create():
    actor = current_user()
    if request.files:
        data = request.form.to_dict()
        image = request.files.get("image")
    else:
        data = json_body()
        image = None

    if not actor.is_superadmin:
        own = actor_staff(actor)
        data["emiscode"] = scope_emiscode(actor, data.get("emiscode"))
        if own is not None:
            data.setdefault("school", own.school)

    x = directory.add_staff(data, image=image)
    current_app.logger.info("staff %s added by user=%s", x.staff_id, actor.id)
    return ok(staff_row(x), status=201)


@bp.put("/<int:pk>")
@requires_roles()
def update(pk):
    actor = current_user()
    x = directory.get_staff(pk)
    data = json_body()
    if can_manage_school(actor, x.emiscode):
        allowed = directory.ADMIN_EDITABLE_FIELDS
    elif actor.staff_id and actor.staff_id == x.staff_id:
        allowed = directory.SELF_EDITABLE_FIELDS
    else:
        raise Forbidden("You cannot edit this record.")
    directory.update_staff(x, data, allowed)
    return ok(staff_row(x))


@bp.post("/<int:pk>/image")
@requires_roles()
def upload_image(pk):
    actor = current_user()
    x = directory.get_staff(pk)
    if not _can_view(actor, x):
        raise Forbidden("You cannot edit this record.")
    directory.set_profile_image(x, request.files.get("image"))
    return ok(staff_row(x))


@bp.put("/<int:pk>/status")
@requires_admin
def update_status(pk):
    data = json_body()
    if not data.get("status"):
        raise ValidationFailed("status is required")
    x = lifecycle.update_status(directory.get_staff(pk), data.get("status"),
                                data.get("status_desc", data.get("description")), current_user())
    return ok(staff_row(x))


# ---------- lifecycle ----------

@bp.post("/<int:pk>/pull")
@requires_admin
def pull(pk):
    data = json_body()
    x, entry, status = lifecycle.pull_staff(
        directory.get_staff(pk), current_user(),
        target_emiscode=data.get("emiscode"),
        target_school=data.get("school"),
        target_unit=data.get("unit"),
    )
    return ok({"staff": staff_row(x), "approval_status": status.value, "pull": pull_row(entry)})


@bp.get("/pull-history")
@requires_admin
def pull_history():
    return ok([pull_row(e) for e in lifecycle.pull_history(current_user())])


@bp.post("/pull-history/<int:entry_id>/undo")
@requires_admin
def undo_pull(entry_id):
    x = lifecycle.undo_pull(entry_id, current_user())
    return ok(staff_row(x))


@bp.post("/<int:pk>/archive")
@requires_admin
def archive(pk):
    x = lifecycle.archive_staff(directory.get_staff(pk), current_user())
    return ok(staff_row(x))


@bp.post("/<int:pk>/restore")
@requires_admin
def restore(pk):
    x = lifecycle.restore_staff(directory.get_staff(pk), current_user())
    return ok(staff_row(x))


# ---------- stored images ----------

@files_bp.get("/profile-images/<path:relpath>")
def profile_image(relpath):
    directory_, name = profile_images.resolve(relpath)
    return send_from_directory(directory_, name)
