"""Tests for property declaration: options, derived metadata and accessors."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated, ClassVar, Optional

import pytest

from patina import (
    Field,
    InvalidArgumentKind,
    InvalidPropertyDefinition,
    MemoryAdapter,
    Model,
    PropertyDescriptor,
    Text,
    TypeCoercionError,
    TypeMismatchError,
    clear_repositories,
    register_repository,
)
from patina.core.types import CustomType
from patina.models.property import DEFAULT_LENGTH, PropertyAccessor
from patina.models.registry import clear_registry, registered_models, resolve_model


class Email(CustomType):
    primitive = str
    options = {"length": 320, "format": "email"}
    bound: ClassVar[list[str]] = []

    @classmethod
    def bind(cls, property):
        cls.bound.append(property.name)


@pytest.fixture(autouse=True)
def cleanup_registry():
    """Clean up registry and repositories before and after each test."""
    clear_registry()
    clear_repositories()
    yield
    clear_registry()
    clear_repositories()


@pytest.fixture
def adapter():
    adapter = MemoryAdapter()
    register_repository("default", adapter)
    return adapter


class TestDeclaration:
    """Test declaring properties from annotations."""

    def test_annotations_become_properties(self):
        """Test each public annotation creates one property."""

        class Post(Model):
            id: int = Field(serial=True)
            title: str
            body: Text
            _cache: dict
            kind: ClassVar[str] = "post"

        props = Post.properties()
        assert props.names() == ["id", "title", "body"]
        assert isinstance(props["title"], PropertyDescriptor)
        assert props["body"].type is Text
        assert props["body"].primitive is str
        assert repr(props["title"]) == "<Property:Post:title>"
        assert Post.kind == "post"

    def test_literal_default(self):
        """Test a plain class attribute value becomes the default."""

        class Post(Model):
            id: int = Field(serial=True)
            published: bool = False
            views: int = 0

        post = Post()
        assert post.published is False
        assert post.views == 0
        assert Post.properties()["views"].nullable is False

    def test_optional_and_annotated(self):
        """Test Optional unwraps to nullable and Annotated carries Field()."""

        class Post(Model):
            id: int = Field(serial=True)
            note: Optional[str] = Field(default="")
            rating: int | None = 3
            slug: Annotated[str, Field(unique=True, length=80)]

        props = Post.properties()
        assert props["note"].primitive is str
        assert props["note"].nullable is True
        assert props["rating"].primitive is int
        assert props["rating"].nullable is True
        assert props["slug"].unique is True
        assert props["slug"].length == 80

    def test_imperative_declaration(self):
        """Test Model.property() declares after class creation."""

        class Post(Model):
            id: int = Field(serial=True)

        prop = Post.property("price", Decimal, scale=4, precision=2)
        assert Post.properties()["price"] is prop
        assert prop.scale == 4
        assert prop.precision == 2
        assert isinstance(Post.__dict__["price"], PropertyAccessor)

    def test_trailing_question_mark_is_stripped(self):
        """Test a predicate-style name declares the bare property."""

        class Post(Model):
            id: int = Field(serial=True)

        prop = Post.property("draft?", bool)
        assert prop.name == "draft"
        assert "draft" in Post.properties()

    def test_custom_type_options_and_bind(self):
        """Test custom type options merge under declared options."""
        Email.bound.clear()

        class User(Model):
            id: int = Field(serial=True)
            email: Email
            backup: Email = Field(length=100)

        props = User.properties()
        assert props["email"].length == 320
        assert props["email"].format == "email"
        assert props["backup"].length == 100
        assert Email.bound == ["email", "backup"]


class TestInvalidDeclarations:
    """Test declaration errors."""

    def test_unsupported_type_registers_nothing(self):
        """Test an unsupported type raises and binds no accessor."""

        class Post(Model):
            id: int = Field(serial=True)

        with pytest.raises(InvalidPropertyDefinition, match="not a supported type"):
            Post.property("tags", list)
        assert "tags" not in Post.properties()
        assert not hasattr(Post, "tags")

    def test_unsupported_annotation_fails_class_creation(self):
        """Test an unsupported annotation aborts the model declaration."""
        with pytest.raises(InvalidPropertyDefinition):

            class Post(Model):
                id: int = Field(serial=True)
                tags: list

    def test_failed_declaration_is_not_registered(self):
        """Test a model whose declaration failed cannot be resolved later."""
        with pytest.raises(InvalidPropertyDefinition):

            class Post(Model):
                id: int = Field(serial=True)
                tags: list

        assert resolve_model("Post") is None
        assert registered_models() == {}

        class Post(Model):
            id: int = Field(serial=True)
            tags: str

        assert resolve_model("Post") is Post
        assert sorted(prop.name for prop in Post.properties()) == ["id", "tags"]

    def test_unknown_option(self):
        """Test unknown options are named in the error."""

        class Post(Model):
            id: int = Field(serial=True)

        with pytest.raises(InvalidPropertyDefinition, match="unknown keys: colour"):
            Post.property("title", str, colour="red")

    def test_invalid_visibility(self):
        """Test visibility tokens are validated."""

        class Post(Model):
            id: int = Field(serial=True)

        with pytest.raises(InvalidPropertyDefinition):
            Post.property("title", str, reader="secret")

    def test_invalid_name(self):
        """Test names must be identifiers."""

        class Post(Model):
            id: int = Field(serial=True)

        with pytest.raises(InvalidPropertyDefinition, match="not a valid property name"):
            Post.property("two words", str)

    def test_wrong_argument_kinds(self):
        """Test structural argument checks."""

        class Post(Model):
            id: int = Field(serial=True)

        with pytest.raises(InvalidArgumentKind):
            PropertyDescriptor(object, "title", str)
        with pytest.raises(InvalidArgumentKind):
            PropertyDescriptor(Post, 42, str)
        with pytest.raises(InvalidArgumentKind):
            PropertyDescriptor(Post, "title", str, [("length", 5)])

    def test_unresolvable_annotation(self):
        """Test a forward reference to an unknown name fails clearly."""
        with pytest.raises(InvalidPropertyDefinition, match="cannot resolve type"):

            class Post(Model):
                id: int = Field(serial=True)
                owner: Nowhere  # noqa: F821


class TestDerivedMetadata:
    """Test metadata derived from the options."""

    def test_keys_are_never_nullable(self):
        """Test key and serial properties ignore nullable=True."""

        class Post(Model):
            id: int = Field(serial=True, nullable=True)
            code: str = Field(key=True, nullable=True)

        props = Post.properties()
        assert props["id"].key is True
        assert props["id"].nullable is False
        assert props["code"].nullable is False
        assert [p.name for p in Post.key_properties()] == ["id", "code"]

    def test_nullable_defaults(self):
        """Test nullable follows the default unless given."""

        class Post(Model):
            id: int = Field(serial=True)
            title: str
            status: str = "draft"
            summary: str = Field(default="", nullable=True)

        props = Post.properties()
        assert props["title"].nullable is True
        assert props["status"].nullable is False
        assert props["summary"].nullable is True

    def test_unique_defaults_to_key(self):
        """Test unique follows key unless given."""

        class Post(Model):
            id: int = Field(serial=True)
            title: str
            slug: str = Field(unique=True)

        props = Post.properties()
        assert props["id"].unique is True
        assert props["title"].unique is False
        assert props["slug"].unique is True

    def test_length(self):
        """Test default and explicit lengths."""

        class Post(Model):
            id: int = Field(serial=True)
            title: str
            subtitle: str = Field(length=range(1, 256))
            tagline: str = Field(length=(1, 255))
            code: str = Field(size=8)
            kind: type
            views: int

        props = Post.properties()
        assert props["title"].length == DEFAULT_LENGTH == 50
        assert props["subtitle"].length == 255
        assert props["tagline"].length == 255
        assert props["code"].size == 8
        assert props["kind"].length == 50
        assert props["views"].length is None

    @pytest.mark.parametrize("length", [range(0), range(5, 1), (300, 10), (-1, 5), 0])
    def test_invalid_length(self, length):
        """Test empty, reversed and non-positive lengths are rejected."""

        class Post(Model):
            id: int = Field(serial=True)

        with pytest.raises(InvalidPropertyDefinition, match="length"):
            Post.property("title", str, length=length)
        assert "title" not in Post.properties()

    def test_primitive_option_resolves_custom_types(self):
        """Test a custom type given as primitive stands for its own primitive."""

        class Post(Model):
            id: int = Field(serial=True)

        prop = Post.property("body", str, primitive=Text)
        assert prop.primitive is str
        assert prop.typecast(5) == "5"

        with pytest.raises(InvalidPropertyDefinition, match="primitive"):
            Post.property("tags", str, primitive=list)

    def test_scale_and_precision(self):
        """Test numeric sizing applies to Decimal and float only."""

        class Item(Model):
            id: int = Field(serial=True)
            price: Decimal
            weight: float = Field(scale=6, precision=3)
            count: int

        props = Item.properties()
        assert (props["price"].scale, props["price"].precision) == (10, 0)
        assert (props["weight"].scale, props["weight"].precision) == (6, 3)
        assert props["count"].scale is None

    def test_lazy_groups(self):
        """Test lazy options and their groups."""

        class Post(Model):
            id: int = Field(serial=True, lazy=True)
            title: str
            body: Text
            summary: str = Field(lazy="details")
            notes: str = Field(lazy=["details", "extra"])
            eager: Text = Field(lazy=False)

        props = Post.properties()
        assert props["id"].lazy is False
        assert props["title"].lazy is False
        assert props["body"].lazy_groups == ("default",)
        assert props["summary"].lazy_groups == ("details",)
        assert props["notes"].lazy_groups == ("details", "extra")
        assert props["eager"].lazy is False
        assert [p.name for p in props.lazy_context("details")] == ["summary", "notes"]
        assert [p.name for p in props.defaults()] == ["id", "title", "eager"]

    def test_index_groups(self):
        """Test single and composite index groups."""

        class Person(Model):
            id: int = Field(serial=True)
            email: str = Field(unique_index=True)
            first: str = Field(index="by_name")
            last: str = Field(index="by_name")
            city: str = Field(index=True)

        props = Person.properties()
        assert props.indexes() == {"by_name": ["first", "last"], "index_city": ["city"]}
        assert props.unique_indexes() == {"unique_index_email": ["email"]}

    def test_metadata_flags(self):
        """Test pass-through metadata options."""

        class Post(Model):
            id: int = Field(serial=True)
            title: str = Field(lock=True, track="on_save", ordinal=2, check=["a", "b"])

        prop = Post.properties()["title"]
        assert prop.lock is True
        assert prop.track == "on_save"
        assert prop.ordinal == 2
        assert prop.check == ["a", "b"]
        assert prop.auto_validation is True


class TestAccessors:
    """Test generated readers, writers and predicates."""

    def test_public_accessor(self):
        """Test public properties read and write under their own name."""

        class Post(Model):
            id: int = Field(serial=True)
            title: str

        post = Post(title="Hello")
        assert post.title == "Hello"
        post.title = "Bye"
        assert post.attribute_get("title") == "Bye"

    def test_unknown_constructor_argument(self):
        """Test unknown constructor arguments are rejected."""

        class Post(Model):
            id: int = Field(serial=True)

        with pytest.raises(TypeError, match="unexpected attribute 'colour'"):
            Post(colour="red")

    def test_private_writer(self):
        """Test a private writer is name-mangled and the reader read-only."""

        class Account(Model):
            id: int = Field(serial=True)
            secret: str = Field(writer="private")

            def rotate(self, value):
                self.__secret = value

        prop = Account.properties()["secret"]
        assert prop.reader_name == "secret"
        assert prop.writer_name == "_Account__secret"

        account = Account()
        account.rotate("s3cret")
        assert account.secret == "s3cret"
        with pytest.raises(AttributeError, match="read-only"):
            account.secret = "nope"
        with pytest.raises(AttributeError, match="write-only"):
            account._Account__secret

    def test_protected_accessor(self):
        """Test a protected accessor uses a leading underscore."""

        class Account(Model):
            id: int = Field(serial=True)
            token: str = Field(accessor="protected")

        account = Account()
        account._token = "abc"
        assert account._token == "abc"
        assert not hasattr(Account, "token")

    def test_protected_flag_forces_writer(self):
        """Test protected=True restricts the writer only."""

        class Account(Model):
            id: int = Field(serial=True)
            balance: int = Field(protected=True, default=0)

        account = Account()
        account._balance = "15"
        assert account.balance == 15
        with pytest.raises(AttributeError):
            account.balance = 20

    def test_boolean_predicate(self):
        """Test boolean properties get an is_<name> reader."""

        class Post(Model):
            id: int = Field(serial=True)
            published: bool = False

        post = Post()
        assert post.is_published is False
        post.published = "t"
        assert post.is_published is True
        assert Post.properties()["published"].predicate_name == "is_published"
        with pytest.raises(AttributeError):
            post.is_published = False

    def test_predicate_does_not_replace_existing_method(self):
        """Test a user-defined predicate wins over the generated one."""

        class Post(Model):
            id: int = Field(serial=True)
            archived: bool = False

            def is_archived(self):
                return "custom"

        assert Post().is_archived() == "custom"
        assert Post.properties()["archived"].predicate_name is None

    def test_callable_default(self):
        """Test callable defaults receive the instance and property."""

        class Post(Model):
            id: int = Field(serial=True)
            title: str = "Untitled"
            slug: str = Field(default=lambda post, prop: post.title.lower())

        post = Post(title="Hello")
        assert post.slug == "hello"

    def test_assignment_typecasts(self):
        """Test values are typecast on assignment."""

        class Person(Model):
            id: int = Field(serial=True)
            age: int
            born: date

        person = Person(age="7")
        assert person.age == 7
        person.age = "abc"
        assert person.age == 0
        person.born = "2000-02-29"
        assert person.born == date(2000, 2, 29)
        with pytest.raises(TypeCoercionError):
            person.born = "someday"

    def test_get_and_set_check_the_instance(self):
        """Test descriptor get/set reject instances of other models."""

        class Post(Model):
            id: int = Field(serial=True)
            title: str

        class Page(Model):
            id: int = Field(serial=True)
            title: str

        prop = Post.properties()["title"]
        post = Post()
        prop.set(post, 12)
        assert prop.get(post) == "12"
        with pytest.raises(TypeMismatchError):
            prop.get(Page())
        with pytest.raises(TypeMismatchError):
            prop.set("not a model", "x")


class TestFieldNames:
    """Test storage field names."""

    def test_naming_convention(self, adapter):
        """Test the adapter's naming convention applies by default."""

        class Post(Model):
            id: int = Field(serial=True)
            postTitle: str
            body: str = Field(field="content")

        props = Post.properties()
        assert props["postTitle"].field() == "post_title"
        assert props["body"].field() == "content"
        assert props["id"].field("default") == "id"


class TestHooks:
    """Test optional model hooks called for each property."""

    def test_auto_validation_hook(self):
        """Test auto_generate_validations() sees every property."""
        seen = []

        class Validated(Model):
            @classmethod
            def auto_generate_validations(cls, property):
                seen.append((cls.__name__, property.name))

        class Post(Validated):
            id: int = Field(serial=True)
            title: str

        assert seen == [("Post", "id"), ("Post", "title")]


class TestInheritance:
    """Test subclasses inherit their parent's properties."""

    def test_properties_are_recreated_for_subclass(self):
        """Test inherited descriptors are bound to the subclass."""

        class User(Model):
            id: int = Field(serial=True)
            name: str

        class Admin(User):
            level: int = 1

        assert Admin.properties().names() == ["id", "name", "level"]
        assert Admin.properties()["name"].model is Admin
        assert User.properties()["name"].model is User
        assert "level" not in User.properties()
        admin = Admin(name="root")
        assert admin.name == "root"
        assert admin.level == 1
