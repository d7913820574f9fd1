from convexgen.schema import validators as v

owned = {
    "blog": v.obj({
        "title": v.string(),
        "content": v.string(),
        "category": v.enum(["tech", "life", "tutorial"]),
        "published": v.boolean(),
        "coverImage": v.file().optional(),
        "tags": v.array(v.string()).optional(),
    }),
    "chat": v.obj({
        "title": v.string(),
        "isPublic": v.boolean(),
    }),
}

orgScoped = {
    "wiki": v.obj({
        "title": v.string(),
        "slug": v.string(),
        "content": v.string().optional(),
        "status": v.enum(["draft", "published"]),
        "editors": v.array(v.string()).optional(),
    }),
    "project": v.obj({
        "name": v.string(),
        "description": v.string().optional(),
        "status": v.enum(["active", "archived", "completed"]).optional(),
    }),
    "task": v.obj({
        "title": v.string(),
        "projectId": v.string(),
        "completed": v.boolean().optional(),
        "priority": v.enum(["low", "medium", "high"]).optional(),
    }),
}

base = {
    "movie": v.obj({
        "tmdb_id": v.number(),
        "title": v.string(),
        "genres": v.array(v.obj({
            "id": v.number(),
            "name": v.string(),
        })),
    }),
}

singleton = {
    "profileData": v.obj({
        "displayName": v.string(),
        "bio": v.string().optional(),
        "avatar": v.file().optional(),
        "notifications": v.boolean(),
    }),
}

children = {
    "message": {
        "schema": v.obj({
            "chatId": v.string(),
            "role": v.enum(["user", "assistant", "system"]),
            "parts": v.array(v.union([
                v.obj({"type": v.literal("text"), "text": v.string()}),
                v.obj({"type": v.literal("image"), "image": v.file()}),
                v.obj({"type": v.literal("file"), "file": v.file(), "name": v.string()}),
            ])),
        }),
    },
}
