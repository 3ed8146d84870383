from __future__ import annotations

import unittest
from dataclasses import replace

from alloc_doctor.inference import generate_rule_recommendations, suggest_all_corrections
from alloc_doctor.models import BusinessRule, Client
from alloc_doctor.rule_compiler import convert_to_rule
from alloc_doctor.sample_data import generate_sample_data
from alloc_doctor.state import AppState
from alloc_doctor.weights import DEFAULT_WEIGHTS, apply_preset, is_normalized


def sample_state(**kwargs) -> AppState:
    data = generate_sample_data()
    return AppState.from_records(clients=data["client"], workers=data["worker"], tasks=data["task"], **kwargs)


class EntityTransitionTests(unittest.TestCase):
    def test_from_records_validates_immediately(self):
        state = sample_state()
        self.assertEqual(len(state.clients), 3)
        self.assertIsInstance(state.clients[0], Client)
        self.assertEqual(len(state.validation_errors), 2)
        self.assertEqual(state.priority_weights, DEFAULT_WEIGHTS)

    def test_edit_cell_returns_new_state_and_revalidates(self):
        state = sample_state()
        edited = state.edit_cell("client", 0, "RequestedTaskIDs", "T001,T999")
        self.assertIsNot(edited, state)
        self.assertEqual(state.clients[0].requested_task_ids, "T001,T002,T003")
        self.assertEqual(edited.clients[0].requested_task_ids, "T001,T999")
        self.assertIn("unknown-task", [error.check for error in edited.validation_errors])
        self.assertNotIn("unknown-task", [error.check for error in state.validation_errors])

    def test_edit_cell_normalizes_values(self):
        state = sample_state()
        edited = state.edit_cell("task", 0, "Duration", "4")
        self.assertEqual(edited.tasks[0].duration, 4)
        edited = edited.edit_cell("task", 0, "PreferredPhases", "2-4")
        self.assertEqual(edited.tasks[0].preferred_phases, "[2,3,4]")
        edited = edited.edit_cell("worker", 1, "AvailableSlots", "1, 2")
        self.assertEqual(edited.workers[1].available_slots, "[1,2]")

    def test_edit_cell_rejects_bad_row_and_field(self):
        state = sample_state()
        with self.assertRaises(IndexError):
            state.edit_cell("client", 3, "ClientName", "Nobody")
        with self.assertRaises(IndexError):
            state.edit_cell("client", -1, "ClientName", "Nobody")
        with self.assertRaises(ValueError):
            state.edit_cell("client", 0, "Budget", "100")
        with self.assertRaises(ValueError):
            state.edit_cell("project", 0, "ClientName", "x")

    def test_edit_cell_allows_existing_extra_column(self):
        state = AppState.from_records(clients=[{"ClientID": "C1", "ClientName": "A", "PriorityLevel": 1, "Notes": ""}])
        edited = state.edit_cell("client", 0, "Notes", "vip")
        self.assertEqual(edited.clients[0].extras["Notes"], "vip")

    def test_fixing_the_data_clears_the_issue(self):
        state = sample_state().edit_cell("task", 0, "MaxConcurrent", 1)
        self.assertEqual([error.entity_id for error in state.validation_errors], ["T005"])

    def test_with_collection_replaces_wholesale(self):
        state = sample_state().with_collection("task", [])
        self.assertEqual(state.tasks, ())
        unknown = [error for error in state.validation_errors if error.check == "unknown-task"]
        self.assertEqual(len(unknown), 7)

    def test_apply_correction(self):
        state = sample_state()
        correction = suggest_all_corrections(state.clients, state.workers, state.tasks)[0]
        updated = state.apply_correction(correction)
        self.assertEqual(updated.clients[2].priority_level, 4)
        self.assertEqual(state.clients[2].priority_level, 2)

    def test_apply_correction_touches_only_its_row_when_ids_repeat(self):
        clients = [
            {"ClientID": "C001", "ClientName": "Low", "PriorityLevel": 1, "RequestedTaskIDs": "T1"},
            {"ClientID": "C001", "ClientName": "High", "PriorityLevel": 5, "RequestedTaskIDs": "T1"},
        ]
        tasks = [{"TaskID": "T1", "Duration": 5, "RequiredSkills": "a", "MaxConcurrent": 1}]
        state = AppState.from_records(clients=clients, tasks=tasks)
        corrections = suggest_all_corrections(state.clients, state.workers, state.tasks)
        self.assertEqual([(item.id, item.row) for item in corrections], [("C001", 0)])

        updated = state.apply_correction(corrections[0])
        self.assertEqual([client.priority_level for client in updated.clients], [4, 5])

    def test_apply_correction_rejects_stale_or_ambiguous_targets(self):
        state = sample_state()
        correction = suggest_all_corrections(state.clients, state.workers, state.tasks)[0]
        with self.assertRaises(IndexError):
            state.with_collection("client", state.clients[:1]).apply_correction(correction)

        repeated = state.with_collection("client", state.clients + (state.clients[2],))
        with self.assertRaises(ValueError):
            repeated.apply_correction(replace(correction, row=None))

    def test_strict_mode_is_carried_through_edits(self):
        state = AppState.from_records(clients=[{"ClientID": "C1", "ClientName": "A", "PriorityLevel": 1, "Notes": ""}], strict=True)
        self.assertEqual([error.check for error in state.validation_errors], ["unexpected-field"])
        edited = state.edit_cell("client", 0, "ClientName", "B")
        self.assertEqual([error.check for error in edited.validation_errors], ["unexpected-field"])


class RuleTransitionTests(unittest.TestCase):
    def test_add_toggle_remove(self):
        rule = convert_to_rule("Tasks T001 and T002 must run together")
        state = sample_state().add_rule(rule)
        self.assertEqual(len(state.business_rules), 1)

        toggled = state.toggle_rule(rule.id)
        self.assertFalse(toggled.business_rules[0].active)
        self.assertTrue(state.business_rules[0].active)
        self.assertTrue(toggled.toggle_rule(rule.id).business_rules[0].active)

        self.assertEqual(toggled.remove_rule(rule.id).business_rules, ())
        self.assertEqual(toggled.remove_rule("missing").business_rules, toggled.business_rules)

    def test_rule_changes_do_not_touch_validation(self):
        state = sample_state()
        updated = state.add_rule(BusinessRule(id="r1", type="loadLimit", name="Cap", description="", parameters={}))
        self.assertEqual(updated.validation_errors, state.validation_errors)

    def test_accept_recommendation(self):
        tasks = [
            {"TaskID": "T1", "RequiredSkills": "a", "Duration": 1, "MaxConcurrent": 1},
            {"TaskID": "T2", "RequiredSkills": "a", "Duration": 1, "MaxConcurrent": 1},
        ]
        workers = [{"WorkerID": "W1", "Skills": "a", "AvailableSlots": "[1]", "MaxLoadPerPhase": 1}]
        state = AppState.from_records(workers=workers, tasks=tasks)
        recommendation = generate_rule_recommendations(state.clients, state.workers, state.tasks)[0]
        state = state.accept_recommendation(recommendation)
        self.assertEqual(state.business_rules[0].id, recommendation.id)
        self.assertEqual(state.business_rules[0].type, "coRun")


class WeightTransitionTests(unittest.TestCase):
    def test_set_weight_keeps_sum(self):
        state = sample_state().set_weight("fairness", 0.6)
        self.assertTrue(is_normalized(state.priority_weights))

    def test_preset_and_reset(self):
        state = sample_state().apply_preset("skill-optimization")
        self.assertEqual(state.priority_weights, apply_preset("skill-optimization"))
        self.assertEqual(state.reset_weights().priority_weights, DEFAULT_WEIGHTS)
        with self.assertRaises(KeyError):
            state.apply_preset("nope")


if __name__ == "__main__":
    unittest.main()
