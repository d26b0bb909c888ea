"""Memory files: one markdown document per memory, YAML frontmatter on top.

Layout:
    <store root>/
    ├── index.yaml                     # root category index
    └── project/
        ├── index.yaml                 # category index (one per directory)
        └── cortex/
            ├── index.yaml
            └── architecture.md        # memory "project/cortex/architecture"

File format:
    ---
    createdAt: 2024-01-01T00:00:00.000Z
    updatedAt: 2024-01-02T00:00:00.000Z
    tags: [design, notes]
    source: user
    expiresAt: 2025-01-01T00:00:00.000Z   (only when set)
    ---
    free-text body, kept byte for byte
"""
