"""Built-in demo dataset: three clients, four workers, seven tasks."""

from __future__ import annotations

from typing import Any

SAMPLE_CLIENTS: list[dict[str, Any]] = [
    {
        "ClientID": "C001",
        "ClientName": "TechCorp Solutions",
        "PriorityLevel": 5,
        "RequestedTaskIDs": "T001,T002,T003",
        "GroupTag": "Enterprise",
        "AttributesJSON": '{"industry": "Technology", "size": "Large"}',
    },
    {
        "ClientID": "C002",
        "ClientName": "Healthcare Plus",
        "PriorityLevel": 4,
        "RequestedTaskIDs": "T004,T005",
        "GroupTag": "Healthcare",
        "AttributesJSON": '{"industry": "Healthcare", "compliance": "HIPAA"}',
    },
    {
        "ClientID": "C003",
        "ClientName": "StartupX",
        "PriorityLevel": 2,
        "RequestedTaskIDs": "T006,T007",
        "GroupTag": "Startup",
        "AttributesJSON": '{"stage": "Series A", "team_size": 15}',
    },
]

SAMPLE_WORKERS: list[dict[str, Any]] = [
    {
        "WorkerID": "W001",
        "WorkerName": "Alice Johnson",
        "Skills": "JavaScript,React,Node.js",
        "AvailableSlots": "[1,2,3,4,5]",
        "MaxLoadPerPhase": 3,
        "WorkerGroup": "Frontend",
        "QualificationLevel": 5,
    },
    {
        "WorkerID": "W002",
        "WorkerName": "Bob Smith",
        "Skills": "Python,Django,PostgreSQL",
        "AvailableSlots": "[1,3,5]",
        "MaxLoadPerPhase": 2,
        "WorkerGroup": "Backend",
        "QualificationLevel": 4,
    },
    {
        "WorkerID": "W003",
        "WorkerName": "Carol Davis",
        "Skills": "Java,Spring,MongoDB",
        "AvailableSlots": "[2,4,6]",
        "MaxLoadPerPhase": 2,
        "WorkerGroup": "Backend",
        "QualificationLevel": 4,
    },
    {
        "WorkerID": "W004",
        "WorkerName": "David Wilson",
        "Skills": "React,TypeScript,GraphQL",
        "AvailableSlots": "[1,2,3]",
        "MaxLoadPerPhase": 3,
        "WorkerGroup": "Frontend",
        "QualificationLevel": 5,
    },
]

SAMPLE_TASKS: list[dict[str, Any]] = [
    {
        "TaskID": "T001",
        "TaskName": "Frontend Development",
        "Category": "Development",
        "Duration": 3,
        "RequiredSkills": "JavaScript,React",
        "PreferredPhases": "[1,2,3]",
        "MaxConcurrent": 2,
    },
    {
        "TaskID": "T002",
        "TaskName": "API Integration",
        "Category": "Integration",
        "Duration": 2,
        "RequiredSkills": "JavaScript,Node.js",
        "PreferredPhases": "[2,3,4]",
        "MaxConcurrent": 1,
    },
    {
        "TaskID": "T003",
        "TaskName": "Database Design",
        "Category": "Database",
        "Duration": 4,
        "RequiredSkills": "PostgreSQL",
        "PreferredPhases": "[1,2]",
        "MaxConcurrent": 1,
    },
    {
        "TaskID": "T004",
        "TaskName": "HIPAA Compliance",
        "Category": "Compliance",
        "Duration": 2,
        "RequiredSkills": "Java,Spring",
        "PreferredPhases": "[3,4,5]",
        "MaxConcurrent": 1,
    },
    {
        "TaskID": "T005",
        "TaskName": "Healthcare Dashboard",
        "Category": "UI/UX",
        "Duration": 3,
        "RequiredSkills": "React,TypeScript",
        "PreferredPhases": "[4,5,6]",
        "MaxConcurrent": 2,
    },
    {
        "TaskID": "T006",
        "TaskName": "MVP Development",
        "Category": "Development",
        "Duration": 5,
        "RequiredSkills": "Python,Django",
        "PreferredPhases": "[1,2,3,4,5]",
        "MaxConcurrent": 1,
    },
    {
        "TaskID": "T007",
        "TaskName": "Mobile App",
        "Category": "Mobile",
        "Duration": 4,
        "RequiredSkills": "React,GraphQL",
        "PreferredPhases": "[3,4,5,6]",
        "MaxConcurrent": 1,
    },
]


def generate_sample_data() -> dict[str, list[dict[str, Any]]]:
    """Fresh copies of the demo rows, keyed by entity kind."""
    return {
        "client": [dict(row) for row in SAMPLE_CLIENTS],
        "worker": [dict(row) for row in SAMPLE_WORKERS],
        "task": [dict(row) for row in SAMPLE_TASKS],
    }
