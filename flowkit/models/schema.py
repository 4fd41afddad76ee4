# flowkit/models/schema.py
# Shape of the n8n workflow document as accepted by Workflow.from_dict.
# Only types are checked here; graph-level problems (duplicates, dangling names,
# empty names) are left to the validator so such workflows can still be loaded.

ENDPOINT_SCHEMA = {
    "type": "object",
    "required": ["node"],
    "properties": {
        "node": {"type": "string"},
        # Optional endpoint type (usually "main")
        "type": {"type": "string"},
        # Optional input index: non-negative integer
        "index": {
            "type": "integer",
            "minimum": 0
        }
    },
    "additionalProperties": True
}

NODE_SCHEMA = {
    "type": "object",
    "required": ["id", "name", "type"],
    "properties": {
        "id": {
            "type": "string"
        },
        "name": {
            "type": "string"
        },
        "type": {
            "type": "string"
        },
        "typeVersion": {
            "type": ["integer", "number"]
        },

        # n8n exports write [x, y]; some generators emit {"x": .., "y": ..}
        "position": {
            "anyOf": [
                {
                    "type": "array",
                    "items": {"type": "number"},
                    "minItems": 2,
                    "maxItems": 2
                },
                {
                    "type": "object",
                    "properties": {
                        "x": {"type": "number"},
                        "y": {"type": "number"}
                    },
                    "required": ["x", "y"],
                    "additionalProperties": True
                }
            ]
        },

        # Opaque to flowkit; null is tolerated and read as {}
        "parameters": {
            "type": ["object", "null"]
        },
        "disabled": {"type": "boolean"},
        "notes": {"type": ["string", "null"]},
        "continueOnFail": {"type": "boolean"},
        "retryOnFail": {"type": "boolean"},
        "maxTries": {"type": ["integer", "null"], "minimum": 0},
        "waitBetweenTries": {"type": ["integer", "null"], "minimum": 0},
        "alwaysOutputData": {"type": "boolean"},
        "executeOnce": {"type": "boolean"},
        "webhookId": {"type": ["string", "null"]}
    },
    "additionalProperties": True
}

N8N_WORKFLOW_SCHEMA = {
    "type": "object",
    "required": ["name", "nodes", "connections"],
    "properties": {
        "id": {"type": ["string", "number", "null"]},
        "name": {"type": "string"},
        "active": {"type": "boolean"},
        "versionId": {"type": ["string", "null"]},

        "nodes": {
            "type": "array",
            "items": NODE_SCHEMA
        },

        "connections": {
            "type": "object",

            # Top-level keys: source node names
            "additionalProperties": {
                "type": "object",

                # Inner keys: port types (e.g., "main")
                "additionalProperties": {
                    "type": "array",

                    # One entry per source output; null marks an unused output
                    "items": {
                        "anyOf": [
                            {
                                "type": "array",
                                "items": ENDPOINT_SCHEMA
                            },
                            {"type": "null"}
                        ]
                    }
                }
            }
        },

        "tags": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id"],
                "properties": {
                    "id": {"type": ["string", "number"]},
                    "name": {"type": "string"}
                },
                "additionalProperties": True
            }
        }
    }
}
