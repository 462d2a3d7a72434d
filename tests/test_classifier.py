"""Tests for artifact classification and routing."""

import pytest

from crudflow.codegen.classifier import RULES, classify
from crudflow.codegen.router import ArtifactRouter
from crudflow.models import ArtifactKind, PipelineRunState


class TestRuleOrder:
    def test_rule_table_order_is_fixed(self):
        assert [kind for kind, _ in RULES] == [
            ArtifactKind.CONTROLLER,
            ArtifactKind.SERVICE,
            ArtifactKind.ENTITY,
            ArtifactKind.DTO,
            ArtifactKind.REPOSITORY,
        ]

    def test_service_name_wins_over_repository_supertype(self):
        code = "public interface UserService extends JpaRepository<User, Long> {\n}"
        assert classify(code) is ArtifactKind.SERVICE

    def test_entity_annotation_wins_over_dto_name(self):
        code = "@Entity\npublic class UserResponse {\n    private Long id;\n}"
        assert classify(code) is ArtifactKind.ENTITY

    def test_dto_name_wins_over_repository_import(self):
        code = (
            "import org.springframework.data.jpa.repository.JpaRepository;\n\n"
            "public class UserDto {\n    private Long id;\n}"
        )
        assert classify(code) is ArtifactKind.DTO

    def test_controller_hint_wins_over_everything(self):
        code = "@Service\npublic class UserService {\n}"
        assert classify(code, controller_hint=True) is ArtifactKind.CONTROLLER


class TestClassify:
    @pytest.mark.parametrize(
        "code, kind",
        [
            ("@RestController\npublic class Api {\n}", ArtifactKind.CONTROLLER),
            ("@RequestMapping(\"/x\")\npublic class Api {\n}", ArtifactKind.CONTROLLER),
            ("public class OrderController {\n}", ArtifactKind.CONTROLLER),
            ("@Service\npublic class Billing {\n}", ArtifactKind.SERVICE),
            ("public class OrderServiceImpl {\n}", ArtifactKind.SERVICE),
            ("@Entity\n@Table(name = \"orders\")\npublic class Order {\n}", ArtifactKind.ENTITY),
            ("public record OrderRequest(String item) {\n}", ArtifactKind.DTO),
            ("public class OrderDTO {\n}", ArtifactKind.DTO),
            ("public interface Orders extends CrudRepository<Order, Long> {\n}", ArtifactKind.REPOSITORY),
            ("@Repository\npublic class OrderStore {\n}", ArtifactKind.REPOSITORY),
            ("public class Money {\n}", ArtifactKind.GENERIC),
        ],
    )
    def test_kinds(self, code, kind):
        assert classify(code) is kind

    def test_body_calls_do_not_change_kind(self):
        code = (
            "@Service\npublic class OrderService {\n"
            "    private final OrderRepository orderRepository;\n"
            "    @GetMapping(\"/never\")\n"
            "    public void a() {}\n"
            "}"
        )
        assert classify(code) is ArtifactKind.SERVICE


class RecordingSource:
    def __init__(self):
        self.calls = []

    def create_controller_or_update_method(self, name, code, force_create):
        self.calls.append(("controller", name, force_create))

    def create_service(self, code):
        self.calls.append(("service",))

    def create_entity(self, code):
        self.calls.append(("entity",))

    def create_dto(self, code):
        self.calls.append(("dto",))

    def create_repository(self, code):
        self.calls.append(("repository",))

    def create_class(self, code, package=None):
        self.calls.append(("class", package))


class TestArtifactRouter:
    def test_controller_updates_state_and_uses_given_name(self):
        source = RecordingSource()
        state = PipelineRunState()
        unit = "@RestController\npublic class UserController {\n}"
        kind = ArtifactRouter(source, state).route(unit, controller_name="UserController", force_create=True)
        assert kind is ArtifactKind.CONTROLLER
        assert source.calls == [("controller", "UserController", True)]
        assert state.selected_controller_code == unit

    def test_controller_name_defaults_to_class_name(self):
        source = RecordingSource()
        ArtifactRouter(source, PipelineRunState()).route("public class AdminController {\n}")
        assert source.calls == [("controller", "AdminController", False)]

    def test_force_create_does_not_turn_services_into_controllers(self):
        source = RecordingSource()
        state = PipelineRunState()
        ArtifactRouter(source, state).route("@Service\npublic class UserService {\n}", force_create=True)
        assert source.calls == [("service",)]
        assert state.selected_controller_code == ""

    @pytest.mark.parametrize(
        "code, call",
        [
            ("@Entity\npublic class User {\n}", ("entity",)),
            ("public class UserRequest {\n}", ("dto",)),
            ("public interface UserRepository extends JpaRepository<User, Long> {\n}", ("repository",)),
            ("public class Helper {\n}", ("class", None)),
        ],
    )
    def test_single_purpose_creations(self, code, call):
        source = RecordingSource()
        ArtifactRouter(source, PipelineRunState()).route(code)
        assert source.calls == [call]
