from __future__ import annotations

import unittest

from alloc_doctor.inference import (
    analyze_skill_gaps,
    analyze_task_patterns,
    analyze_worker_overload,
    generate_rule_recommendations,
    is_complex_task,
    suggest_all_corrections,
    suggest_corrections,
)
from alloc_doctor.models import Task, Worker
from alloc_doctor.sample_data import generate_sample_data


def make_task(task_id, skills, duration=1):
    return Task.from_record({"TaskID": task_id, "RequiredSkills": skills, "Duration": duration, "MaxConcurrent": 1})


def make_worker(worker_id, skills="", load=1, group="GroupA"):
    return Worker.from_record(
        {"WorkerID": worker_id, "Skills": skills, "MaxLoadPerPhase": load, "WorkerGroup": group, "AvailableSlots": "[1]"}
    )


class RecommendationTests(unittest.TestCase):
    def test_same_skills_in_any_order_produce_one_corun(self):
        tasks = [make_task("T1", "python, sql"), make_task("T2", "sql,python")]
        workers = [make_worker("W1", "python,sql"), make_worker("W2", "python,sql")]
        recommendations = generate_rule_recommendations([], workers, tasks)
        corun = [item for item in recommendations if item.type == "coRun"]
        self.assertEqual(len(corun), 1)
        self.assertEqual(corun[0].parameters["tasks"], ["T1", "T2"])
        self.assertGreaterEqual(corun[0].confidence, 0.5)
        self.assertAlmostEqual(corun[0].confidence, 0.7)
        self.assertEqual(corun[0].id, "corun-rec-T1-T2")
        self.assertEqual(corun[0].reasoning, "These tasks share 2 common skills and have similar durations")

    def test_corun_confidence_is_capped(self):
        tasks = tuple(make_task(f"T{i}", "python") for i in range(6))
        patterns = analyze_task_patterns(tasks)
        self.assertEqual(len(patterns), 1)
        self.assertEqual(patterns[0]["confidence"], 0.9)

    def test_tasks_without_skills_are_not_grouped(self):
        self.assertEqual(analyze_task_patterns((make_task("T1", ""), make_task("T2", " "))), [])

    def test_overloaded_group_gets_load_limit(self):
        workers = (make_worker("W1", load=1), make_worker("W2", load=1), make_worker("W3", load=10))
        overloaded = analyze_worker_overload(workers)
        self.assertEqual(overloaded, [{"worker_group": "GroupA", "suggested_limit": 4, "confidence": 0.75}])

        recommendations = generate_rule_recommendations([], workers, [])
        self.assertEqual(recommendations[0].id, "loadlimit-rec-GroupA")
        self.assertEqual(recommendations[0].parameters, {"workerGroup": "GroupA", "maxSlotsPerPhase": 4})
        self.assertEqual(recommendations[0].description, "Limit GroupA to 4 tasks per phase")

    def test_even_group_is_not_overloaded(self):
        workers = (make_worker("W1", load=3), make_worker("W2", load=4))
        self.assertEqual(analyze_worker_overload(workers), [])

    def test_non_numeric_loads_are_ignored(self):
        workers = (make_worker("W1", load="lots"), make_worker("W2", load=2))
        self.assertEqual(analyze_worker_overload(workers), [])

    def test_scarce_skill_is_reported(self):
        tasks = (make_task("T1", "rust"), make_task("T2", "rust"), make_task("T3", "rust"))
        workers = (make_worker("W1", "rust"),)
        gaps = analyze_skill_gaps(workers, tasks)
        self.assertEqual(len(gaps), 1)
        self.assertEqual(gaps[0]["skill"], "rust")
        self.assertAlmostEqual(gaps[0]["confidence"], 0.7)

    def test_balanced_skill_is_not_a_gap(self):
        tasks = (make_task("T1", "rust"), make_task("T2", "rust"))
        workers = (make_worker("W1", "rust"),)
        self.assertEqual(analyze_skill_gaps(workers, tasks), [])

    def test_recommendations_sorted_by_confidence_descending(self):
        tasks = [make_task("T1", "go"), make_task("T2", "go"), make_task("T3", "go"), make_task("T4", "go")]
        workers = [make_worker("W1", load=1), make_worker("W2", load=1), make_worker("W3", load=10)]
        recommendations = generate_rule_recommendations([], workers, tasks)
        confidences = [item.confidence for item in recommendations]
        self.assertEqual(confidences, sorted(confidences, reverse=True))
        self.assertEqual([item.type for item in recommendations], ["coRun", "patternMatch", "loadLimit"])

    def test_ties_keep_generation_order(self):
        tasks = [make_task("T1", "a"), make_task("T2", "a"), make_task("T3", "b"), make_task("T4", "b")]
        workers = [make_worker("W1", "a,b"), make_worker("W2", "a,b")]
        recommendations = generate_rule_recommendations([], workers, tasks)
        self.assertEqual([item.id for item in recommendations], ["corun-rec-T1-T2", "corun-rec-T3-T4"])

    def test_recommendation_converts_to_active_rule(self):
        tasks = [make_task("T1", "a"), make_task("T2", "a")]
        recommendation = generate_rule_recommendations([], [make_worker("W1", "a")], tasks)[0]
        rule = recommendation.to_rule()
        self.assertEqual(rule.type, "coRun")
        self.assertEqual(rule.priority, 1)
        self.assertTrue(rule.active)
        self.assertEqual(rule.name, recommendation.description)

    def test_sample_data_has_no_patterns(self):
        data = generate_sample_data()
        self.assertEqual(generate_rule_recommendations(data["client"], data["worker"], data["task"]), [])


class CorrectionTests(unittest.TestCase):
    def test_low_priority_client_with_complex_task_gets_raised(self):
        clients = [{"ClientID": "C1", "PriorityLevel": 2, "RequestedTaskIDs": "T1,T2"}]
        tasks = [make_task("T1", "a", duration=5), make_task("T2", "a,b,c")]
        corrections = suggest_corrections(clients, "client", tasks=tasks)
        self.assertEqual(len(corrections), 1)
        correction = corrections[0]
        self.assertEqual(correction.id, "C1")
        self.assertEqual(correction.field, "PriorityLevel")
        self.assertEqual(correction.current_value, 2)
        self.assertEqual(correction.suggested_value, 4)
        self.assertEqual(correction.confidence, 0.75)
        self.assertEqual(correction.reasoning, "Client has 2 complex tasks but low priority")

    def test_priority_three_or_simple_tasks_get_nothing(self):
        tasks = [make_task("T1", "a", duration=5), make_task("T2", "a")]
        self.assertEqual(
            suggest_corrections([{"ClientID": "C1", "PriorityLevel": 3, "RequestedTaskIDs": "T1"}], "client", tasks=tasks),
            [],
        )
        self.assertEqual(
            suggest_corrections([{"ClientID": "C1", "PriorityLevel": 1, "RequestedTaskIDs": "T2"}], "client", tasks=tasks),
            [],
        )

    def test_complexity_thresholds(self):
        self.assertFalse(is_complex_task(make_task("T1", "a,b", duration=3)))
        self.assertTrue(is_complex_task(make_task("T1", "a", duration=4)))
        self.assertTrue(is_complex_task(make_task("T1", "a,b,c", duration=1)))

    def test_worker_and_task_corrections_are_empty(self):
        self.assertEqual(suggest_corrections([make_worker("W1")], "worker", tasks=()), [])
        self.assertEqual(suggest_corrections([make_task("T1", "a")], "task", tasks=()), [])

    def test_tasks_must_be_passed(self):
        clients = [{"ClientID": "C1", "PriorityLevel": 1, "RequestedTaskIDs": "T1"}]
        with self.assertRaises(TypeError):
            suggest_corrections(clients, "client")
        corrections = suggest_corrections(clients, "client", tasks=[make_task("T1", "a", duration=5)])
        self.assertEqual(len(corrections), 1)

    def test_corrections_name_their_row(self):
        clients = [
            {"ClientID": "C1", "PriorityLevel": 5, "RequestedTaskIDs": "T1"},
            {"ClientID": "C1", "PriorityLevel": 1, "RequestedTaskIDs": "T1"},
        ]
        corrections = suggest_corrections(clients, "client", tasks=[make_task("T1", "a", duration=5)])
        self.assertEqual([item.row for item in corrections], [1])
        self.assertEqual(corrections[0].to_dict()["row"], 1)

    def test_unknown_entity_kind_raises(self):
        with self.assertRaises(ValueError):
            suggest_corrections([], "project", tasks=())

    def test_sample_data_suggests_raising_startup_priority(self):
        data = generate_sample_data()
        corrections = suggest_all_corrections(data["client"], data["worker"], data["task"])
        self.assertEqual([(item.id, item.suggested_value) for item in corrections], [("C003", 4)])
        self.assertEqual(corrections[0].to_dict()["currentValue"], 2)


if __name__ == "__main__":
    unittest.main()
