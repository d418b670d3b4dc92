import pytest
from bson import ObjectId

from unlinked.core.exceptions import NotFoundError, ValidationError
from unlinked.schemas.notifications import NotificationType


def test_profile_visit_is_deduplicated_within_window(notification_service, make_user, mongo_db, clock):
    owner, visitor = make_user("owner"), make_user("visitor")

    first = notification_service.record_profile_visit(visitor, owner)
    clock.advance(hours=23)
    repeat = notification_service.record_profile_visit(visitor, owner)

    assert first is not None
    assert first.type is NotificationType.profile_visit
    assert first.related_user.username == "visitor"
    assert repeat is None
    assert mongo_db["notifications"].count_documents({}) == 1

    clock.advance(hours=2)
    later = notification_service.record_profile_visit(visitor, owner)
    assert later is not None
    assert mongo_db["notifications"].count_documents({}) == 2


def test_profile_visit_dedup_is_per_visitor(notification_service, make_user, mongo_db):
    owner = make_user("owner")
    notification_service.record_profile_visit(make_user("v1"), owner)
    notification_service.record_profile_visit(make_user("v2"), owner)
    assert mongo_db["notifications"].count_documents({"recipient_id": owner}) == 2


def test_self_visit_creates_nothing(notification_service, make_user, mongo_db):
    me = make_user("me")
    assert notification_service.record_profile_visit(me, me) is None
    assert mongo_db["notifications"].count_documents({}) == 0


def test_generic_notifications_are_not_deduplicated(notification_service, make_user, mongo_db):
    owner, fan = make_user("owner"), make_user("fan")
    post = mongo_db["posts"].insert_one({"content": "Shipped it", "image": "", "author": fan}).inserted_id
    for _ in range(2):
        notification_service.create(owner, "like", related_user_id=fan, related_post_id=post)
    inbox = notification_service.list_for(owner)
    assert [n.type for n in inbox] == [NotificationType.like, NotificationType.like]
    assert inbox[0].related_post == {"_id": str(post), "content": "Shipped it", "image": ""}


def test_rating_rules(notification_service, make_user):
    owner, rater = make_user("owner"), make_user("rater")
    project = ObjectId()

    rated = notification_service.create(
        owner, NotificationType.project_rated, related_user_id=rater,
        related_project_id=project, rating=4, comment="nice",
    )
    assert rated.rating == 4 and rated.comment == "nice"

    with pytest.raises(ValidationError):
        notification_service.create(owner, "projectRated", related_user_id=rater, rating=6)
    with pytest.raises(ValidationError):
        notification_service.create(owner, "like", related_user_id=rater, rating=3)
    with pytest.raises(ValidationError):
        notification_service.create(owner, "poke", related_user_id=rater)


def test_inbox_is_newest_first_and_recipient_scoped(notification_service, make_user, clock):
    owner, other, actor = make_user("owner"), make_user("other"), make_user("actor")
    notification_service.create(owner, "like", related_user_id=actor)
    clock.advance(minutes=5)
    notification_service.create(owner, "comment", related_user_id=actor)
    notification_service.create(other, "like", related_user_id=actor)

    inbox = notification_service.list_for(owner)
    assert [n.type.value for n in inbox] == ["comment", "like"]
    assert all(n.recipient == owner for n in inbox)
    assert len(notification_service.list_for(owner, limit=1)) == 1


def test_mark_read_and_delete_are_recipient_scoped(notification_service, make_user):
    owner, intruder, actor = make_user("owner"), make_user("intruder"), make_user("actor")
    note = notification_service.create(owner, "connectionAccepted", related_user_id=actor)

    with pytest.raises(NotFoundError):
        notification_service.mark_read(intruder, note.id)
    with pytest.raises(NotFoundError):
        notification_service.delete(intruder, note.id)

    assert notification_service.unread_count(owner) == 1
    assert notification_service.mark_read(owner, note.id).read is True
    assert notification_service.unread_count(owner) == 0

    notification_service.delete(owner, note.id)
    assert notification_service.list_for(owner) == []


def test_mark_all_read(notification_service, make_user):
    owner, actor = make_user("owner"), make_user("actor")
    for kind in ("like", "comment", "connectionAccepted"):
        notification_service.create(owner, kind, related_user_id=actor)

    assert notification_service.mark_all_read(owner) == 3
    assert notification_service.mark_all_read(owner) == 0
    assert notification_service.unread_count(owner) == 0


def test_share_project_records_notification_and_builds_event(
    notification_service, make_user, mongo_db
):
    sender, recipient, collaborator = make_user("sender"), make_user("recipient"), make_user("collab")
    project_id = mongo_db["projects"].insert_one(
        {"name": "Rover", "description": "Mars", "gitlink": "g", "projecturl": "u",
         "collaborators": [collaborator], "owner": sender}
    ).inserted_id

    shared = notification_service.share_project(sender, str(project_id), str(recipient))

    assert shared.recipient_id == recipient
    assert shared.notification.type is NotificationType.project_shared
    assert shared.notification.related_project["_id"] == str(project_id)
    event = shared.event.to_wire()
    assert event["project"]["_id"] == str(project_id)
    assert event["project"]["name"] == "Rover"
    assert event["project"]["collaborators"][0]["username"] == "collab"
    assert "owner" not in event["project"]
    assert event["sender"]["_id"] == str(sender)
    assert shared.ack.to_wire() == {"projectId": str(project_id), "toUserId": str(recipient)}


def test_share_project_validation(notification_service, make_user, mongo_db):
    sender, recipient = make_user("sender"), make_user("recipient")

    with pytest.raises(ValidationError) as exc:
        notification_service.share_project(sender, None, recipient)
    assert exc.value.message == "Missing projectId or toUserId"

    with pytest.raises(NotFoundError) as exc:
        notification_service.share_project(sender, ObjectId(), recipient)
    assert exc.value.message == "Project not found"
    assert mongo_db["notifications"].count_documents({}) == 0


def test_inbox_populates_related_project(notification_service, make_user, mongo_db):
    sender, recipient, collaborator = make_user("sender"), make_user("recipient"), make_user("collab")
    project_id = mongo_db["projects"].insert_one(
        {"name": "Rover", "description": "Mars", "gitlink": "g", "projecturl": "u",
         "collaborators": [collaborator]}
    ).inserted_id
    notification_service.share_project(sender, str(project_id), str(recipient))

    wire = notification_service.list_for(recipient)[0].to_wire()

    project = wire["relatedProject"]
    assert project["_id"] == str(project_id)
    assert project["name"] == "Rover"
    assert project["projecturl"] == "u"
    assert [c["username"] for c in project["collaborators"]] == ["collab"]
    assert wire["relatedUser"]["username"] == "sender"


def test_inbox_drops_references_to_deleted_documents(notification_service, make_user):
    owner, rater = make_user("owner"), make_user("rater")
    notification_service.create(
        owner, "projectRated", related_user_id=rater, related_project_id=ObjectId(), rating=5
    )

    wire = notification_service.list_for(owner)[0].to_wire()
    assert wire["relatedProject"] is None
    assert wire["rating"] == 5
