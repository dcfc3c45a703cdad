#syncflow/repository/schema.py
# Shape a repository workflow file must have before it takes part in a sync.
# Sanitized files carry no node ids/positions, so unlike a raw n8n export only
# "nodes" is mandatory at the top level.
WORKFLOW_FILE_SCHEMA = {
    "type": "object",
    "required": ["nodes"],
    "properties": {
        "name": {
            "type": "string"
        },
        "nodes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "minLength": 1
                    },
                    "type": {
                        "type": "string",
                        "minLength": 1
                    },
                    "parameters": {
                        "type": "object"
                    },
                    # credential-type -> placeholder or resolved reference
                    "credentials": {
                        "type": "object",
                        "additionalProperties": {
                            "type": "object"
                        }
                    }
                },
                "additionalProperties": True
            }
        },
        "connections": {
            "type": ["object", "null"]
        },
        "settings": {
            "type": ["object", "null"]
        }
    },
    "additionalProperties": True
}
