from tortoise import fields
from tortoise.models import Model


class User(Model):
    """A chat user. Only the id matters to the relay."""

    id = fields.IntField(pk=True)
    name = fields.CharField(max_length=100, default="")

    class Meta:
        table = "users"


class Room(Model):
    """A chat room and the users authorized to join it."""

    id = fields.CharField(max_length=64, pk=True)
    users = fields.ManyToManyField("models.User", related_name="rooms", through="room_users")

    class Meta:
        table = "rooms"


class Chat(Model):
    """A persisted chat message."""

    id = fields.IntField(pk=True)
    text = fields.TextField()
    created_at = fields.DatetimeField()
    user = fields.ForeignKeyField("models.User", related_name="chats")
    room = fields.ForeignKeyField("models.Room", related_name="chats")

    class Meta:
        table = "chats"
        ordering = ["created_at"]
