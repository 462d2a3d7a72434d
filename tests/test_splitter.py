"""Tests for code block parsing and class splitting."""

from crudflow.codegen.parsers import parse_code_blocks
from crudflow.codegen.splitter import split_classes

CONTROLLER = """package com.example.user;

import org.springframework.web.bind.annotation.GetMapping;
import org.springframework.web.bind.annotation.RestController;

@RestController
public class UserController {
    @GetMapping("/users/{id}")
    public String get() {
        return "class Fake { }";
    }
}"""


class TestParseCodeBlocks:
    def test_fenced_blocks(self):
        text = "Intro\n```java\nclass A {}\n```\nmiddle\n```\nclass B {}\n```\n"
        assert parse_code_blocks(text) == ["class A {}", "class B {}"]

    def test_non_java_blocks_are_ignored(self):
        text = "```json\n{\"a\": 1}\n```\n```java\nclass A {}\n```"
        assert parse_code_blocks(text) == ["class A {}"]

    def test_unfenced_text_is_one_block(self):
        assert parse_code_blocks("  class A {}  ") == ["class A {}"]

    def test_unterminated_fence(self):
        assert parse_code_blocks("```java\nclass A {}\n") == ["class A {}"]

    def test_empty(self):
        assert parse_code_blocks("   ") == []


class TestSplitClasses:
    def test_single_class_ignores_surrounding_prose(self):
        response = f"Sure! Here is the controller:\n\n```java\n{CONTROLLER}\n```\n\nLet me know if you need more."
        assert split_classes(response) == [CONTROLLER]

    def test_single_class_without_fence(self):
        response = f"Here is the code:\n{CONTROLLER}\nHope it helps."
        assert split_classes(response) == [CONTROLLER]

    def test_multiple_classes_in_one_block_share_preamble(self):
        response = """```java
package com.example.dto;

import lombok.Data;

@Data
public class UserRequest {
    private String name;
}

/** Returned to clients. */
@Data
public class UserResponse {
    private Long id;
}
```"""
        units = split_classes(response)
        assert len(units) == 2
        for unit in units:
            assert unit.startswith("package com.example.dto;\n\nimport lombok.Data;\n\n")
        assert units[0].endswith("@Data\npublic class UserRequest {\n    private String name;\n}")
        assert "/** Returned to clients. */\n@Data\npublic class UserResponse" in units[1]
        assert "UserRequest" not in units[1]

    def test_package_statements_start_new_units(self):
        response = """```java
package com.example.service;

import org.springframework.stereotype.Service;

@Service
public class UserService {
}

package com.example.repository;

import org.springframework.data.jpa.repository.JpaRepository;

public interface UserRepository extends JpaRepository<User, Long> {
}
```"""
        service, repository = split_classes(response)
        assert service.startswith("package com.example.service;")
        assert "JpaRepository" not in service
        assert repository.startswith("package com.example.repository;")
        assert "import org.springframework.stereotype.Service;" not in repository
        assert repository.endswith("public interface UserRepository extends JpaRepository<User, Long> {\n}")

    def test_classes_across_blocks(self):
        response = "```java\nclass A {}\n```\ntext\n```java\nenum B { X, Y }\n```"
        assert split_classes(response) == ["class A {}", "enum B { X, Y }"]

    def test_annotation_arguments_stay_with_class(self):
        response = """```java
@Entity
@Table(name = "users", indexes = {@Index(columnList = "email")})
public class User {
    @Id
    private Long id;
}
```"""
        (unit,) = split_classes(response)
        assert unit.startswith("@Entity\n@Table(name = \"users\"")

    def test_prose_mentioning_class_is_not_a_unit(self):
        response = "This class handles users. The record type is nice.\npublic class A {\n}\n"
        assert split_classes(response) == ["public class A {\n}"]

    def test_no_class_returns_empty(self):
        assert split_classes("I could not generate anything.") == []
        assert split_classes("```java\npublic void a() {}\n```") == []
