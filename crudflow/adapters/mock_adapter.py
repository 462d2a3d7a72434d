from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Dict, List

from crudflow.adapters.llm_base import LLMAdapter, LLMResponse

_TASK_RE = re.compile(r"#\s*TASK:\s*(\w+)")

STORY_DETAIL = """As a blog author, I want to publish a new blog post, so that readers can see it.

## User Story
The author submits a title and content; the system stores the post and returns it with its id.

## Acceptance Criteria
- Given a valid title and content, when the author calls POST /blogs, then the post is created.
- Given an existing id, when a reader calls GET /blogs/{id}, then the post is returned.
"""

DTO_AND_ENTITY = """Here are the classes:

```java
package com.example.blog.dto;

import lombok.Data;

@Data
public class CreateBlogRequest {
    private String title;
    private String content;
}

@Data
public class BlogResponse {
    private Long id;
    private String title;
    private String content;
}
```

```java
package com.example.blog.entity;

import jakarta.persistence.Entity;
import jakarta.persistence.GeneratedValue;
import jakarta.persistence.Id;
import jakarta.persistence.Table;

@Entity
@Table(name = "blog_post")
public class BlogPost {
    @Id
    @GeneratedValue
    private Long id;
    private String title;
    private String content;
}
```
"""

SUGGEST_ENDPOINT = "The endpoint belongs in `BlogController`."

CONTROLLER = """```java
package com.example.blog.controller;

import com.example.blog.dto.BlogResponse;
import com.example.blog.dto.CreateBlogRequest;
import com.example.blog.service.BlogService;
import org.springframework.web.bind.annotation.*;

@RestController
@RequestMapping("/blogs")
public class BlogController {
    private final BlogService blogService;

    public BlogController(BlogService blogService) {
        this.blogService = blogService;
    }

    @PostMapping
    public BlogResponse createBlog(@RequestBody CreateBlogRequest request) {
        return blogService.createBlog(request);
    }

    @GetMapping("/{id}")
    public BlogResponse getBlog(@PathVariable Long id) {
        return blogService.getBlog(id);
    }
}
```
"""

SERVICE_AND_REPOSITORY = """```java
package com.example.blog.service;

import com.example.blog.dto.BlogResponse;
import com.example.blog.dto.CreateBlogRequest;
import com.example.blog.entity.BlogPost;
import com.example.blog.repository.BlogRepository;
import org.springframework.stereotype.Service;

@Service
public class BlogService {
    private final BlogRepository blogRepository;

    public BlogService(BlogRepository blogRepository) {
        this.blogRepository = blogRepository;
    }

    public BlogResponse createBlog(CreateBlogRequest request) {
        BlogPost post = new BlogPost();
        blogRepository.save(post);
        return new BlogResponse();
    }

    public BlogResponse getBlog(Long id) {
        blogRepository.findById(id).orElseThrow();
        return new BlogResponse();
    }
}

package com.example.blog.repository;

import com.example.blog.entity.BlogPost;
import org.springframework.data.jpa.repository.JpaRepository;

public interface BlogRepository extends JpaRepository<BlogPost, Long> {
}
```
"""


@dataclass
class MockAdapter(LLMAdapter):
    name: str = "mock"

    def complete(self, prompt: str) -> LLMResponse:
        return LLMResponse(raw_text=self._build_response(prompt))

    def stream(self, prompt: str):
        text = self.complete(prompt).raw_text
        for line in text.splitlines(keepends=True):
            yield line

    def _build_response(self, prompt: str) -> str:
        match = _TASK_RE.search(prompt)
        task = match.group(1) if match else ""
        if task == "story_detail":
            return STORY_DETAIL
        if task == "create_dto_and_entity":
            return DTO_AND_ENTITY
        if task == "suggest_endpoint":
            return SUGGEST_ENDPOINT
        if task == "update_controller_method":
            return CONTROLLER
        if task == "create_service_and_repository":
            return SERVICE_AND_REPOSITORY
        if task == "update_service_method":
            return self._service_methods(self._payload(prompt).get("missing_methods", []))
        return "No mock response for this prompt."

    def _payload(self, prompt: str) -> Dict:
        _, _, tail = prompt.partition("INPUT:\n")
        try:
            payload = json.loads(tail)
        except json.JSONDecodeError:
            return {}
        return payload if isinstance(payload, dict) else {}

    def _service_methods(self, names: List[str]) -> str:
        methods = [
            f"    public Object {name}(Object... args) {{\n"
            f"        throw new UnsupportedOperationException(\"{name}\");\n"
            "    }"
            for name in names
        ]
        return "```java\n" + "\n\n".join(methods) + "\n```\n"
