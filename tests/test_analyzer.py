import unittest

from cpmnet.analyzer import analyze_reserves, critical_chains, iter_critical_chains, network_levels
from cpmnet.engine import analyze
from cpmnet.models import Task
from cpmnet.passes import backward_pass, forward_pass
from cpmnet.resolver import resolve_dependencies
from cpmnet.sequencer import sequence


SOFTWARE_PROJECT = {
    "project_name": "Software Development",
    "project_manager": "I. Ivanov",
    "start_date": "15.09.22",
    "project_structure": {
        "phases": [
            {
                "phase_name": "Analysis",
                "tasks": [
                    {"task_name": "Functional specs", "duration": 5, "assigned_to": ["Ivanov", "Petrov"], "depends_on": []},
                    {"task_name": "Prototype", "duration": 2, "assigned_to": ["Sidorov"], "depends_on": ["Functional specs"]},
                    {"task_name": "Specs review", "duration": 2, "assigned_to": ["Kozlov"], "depends_on": ["Functional specs"]},
                    {"task_name": "Specs rework", "duration": 0.5, "assigned_to": ["Medvedev"], "depends_on": ["Specs review"]},
                    {"task_name": "Architecture", "duration": 0.5, "assigned_to": ["Popov"], "depends_on": ["Functional specs", "Specs rework"]},
                    {"task_name": "Analysis complete", "duration": 0, "assigned_to": ["Ivanov"], "depends_on": ["Prototype", "Architecture"]},
                ],
            },
            {
                "phase_name": "Development",
                "subphases": [
                    {
                        "subphase_name": "Backend",
                        "tasks": [
                            {"task_name": "Code review", "duration": 1, "assigned_to": [], "depends_on": ["Analysis complete"]},
                            {"task_name": "Implement API", "duration": 10, "assigned_to": ["Petrov"], "depends_on": ["Code review"]},
                        ],
                    },
                    {
                        "subphase_name": "Frontend",
                        "tasks": [
                            {"task_name": "Implement UI", "duration": 7, "assigned_to": ["Lebedev"], "depends_on": ["Analysis complete"]},
                        ],
                    },
                ],
            },
            {
                "phase_name": "Testing",
                "tasks": [
                    {"task_name": "Test plan", "duration": 3, "assigned_to": ["Sidorov"], "depends_on": ["Analysis complete"]},
                    {"task_name": "Integration tests", "duration": 4, "assigned_to": ["Sidorov"], "depends_on": ["Implement API", "Implement UI", "Test plan"]},
                    {"task_name": "Testing complete", "duration": 0, "assigned_to": [], "depends_on": ["Integration tests"]},
                ],
            },
            {
                "phase_name": "Documentation",
                "tasks": [
                    {"task_name": "User guide", "duration": 5, "assigned_to": ["Lebedev"], "depends_on": ["Implement UI"]},
                    {"task_name": "Help review", "duration": 2, "assigned_to": ["Zhukov"], "depends_on": ["User guide"]},
                ],
            },
        ]
    },
}


class TestSoftwareProject(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.result = analyze(SOFTWARE_PROJECT).unwrap()

    def test_project_duration(self):
        # specs 5 + review 2 + rework .5 + arch .5 + code review 1 + API 10 + integration 4
        self.assertEqual(self.result.project_duration, 23)
        self.assertEqual(self.result.project_duration, max(row.ef for row in self.result.tasks))
        self.assertEqual(self.result.project_duration, max(row.lf for row in self.result.tasks))

    def test_reserves_are_non_negative(self):
        for row in self.result.tasks:
            self.assertGreaterEqual(row.total_reserve, 0, row.id)
            self.assertGreaterEqual(row.total_reserve, row.free_reserve, row.id)

    def test_critical_path_is_zero_reserve_set(self):
        zero = [row.id for row in self.result.tasks if row.total_reserve == 0]
        self.assertEqual(self.result.critical_ids, zero)
        self.assertEqual(
            [row.name for row in self.result.critical_path],
            [
                "Functional specs",
                "Specs review",
                "Specs rework",
                "Architecture",
                "Analysis complete",
                "Code review",
                "Implement API",
                "Integration tests",
                "Testing complete",
            ],
        )

    def test_non_critical_reserves(self):
        prototype = self.result.task("Analysis::Prototype")
        self.assertEqual((prototype.es, prototype.ef, prototype.ls, prototype.lf), (5, 7, 6, 8))
        self.assertEqual((prototype.total_reserve, prototype.free_reserve), (1, 1))

        ui = self.result.task("Development::Frontend::Implement UI")
        self.assertEqual((ui.es, ui.ef, ui.ls, ui.lf), (8, 15, 9, 16))
        self.assertEqual((ui.total_reserve, ui.free_reserve), (1, 0))

        test_plan = self.result.task("Testing::Test plan")
        self.assertEqual((test_plan.total_reserve, test_plan.free_reserve), (8, 8))

    def test_dead_end_task_without_successors(self):
        help_review = self.result.task("Documentation::Help review")
        self.assertEqual(help_review.ef, 22)
        self.assertEqual(help_review.lf, 23)
        self.assertEqual(help_review.free_reserve, help_review.total_reserve)

    def test_single_critical_chain(self):
        chain = [task_id.split("::")[-1] for task_id in self.result.critical_chains[0]]
        self.assertEqual(len(self.result.critical_chains), 1)
        self.assertEqual(chain, [row.name for row in self.result.critical_path])

    def test_milestones(self):
        for row in self.result.tasks:
            if row.duration == 0:
                self.assertEqual(row.es, row.ef)
                self.assertEqual(row.ls, row.lf)

    def test_network_levels(self):
        levels = self.result.network_levels()
        self.assertEqual(levels[0], ["Analysis::Functional specs"])
        self.assertEqual(self.result.task("Analysis::Architecture").level, 3)
        self.assertEqual(self.result.task("Testing::Integration tests").level, 7)
        self.assertEqual(max(levels), 8)


def run_analysis(spec, tolerance=0.0):
    tasks = [Task(id=name, name=name, duration=float(d), depends_on=tuple(deps)) for name, d, deps in spec]
    graph = resolve_dependencies(tasks)
    order = sequence(tasks, graph)
    forward = forward_pass(tasks, graph, order)
    backward = backward_pass(tasks, graph, order, forward)
    return tasks, graph, order, forward, analyze_reserves(tasks, graph, forward, backward, tolerance=tolerance)


class TestAnalyzeReserves(unittest.TestCase):
    def test_free_reserve_uses_earliest_successor(self):
        _, _, _, _, analysis = run_analysis(
            [("A", 2, []), ("B", 6, []), ("C", 1, ["A"]), ("D", 1, ["A", "B"])]
        )
        # A finishes at 2; C may start at 2, D not before 6
        self.assertEqual(analysis.reserves["A"].free, 0)
        self.assertEqual(analysis.reserves["A"].total, 4)
        self.assertEqual(analysis.reserves["C"].total, 4)
        self.assertEqual(analysis.reserves["C"].free, 4)

    def test_parallel_critical_branches_are_all_included(self):
        _, _, _, _, analysis = run_analysis(
            [("A", 1, []), ("B", 3, ["A"]), ("C", 3, ["A"]), ("D", 1, ["B", "C"])]
        )
        self.assertEqual(analysis.critical_ids, ["A", "B", "C", "D"])
        self.assertEqual(analysis.critical_chains, [["A", "B", "D"], ["A", "C", "D"]])

    def test_tolerance_absorbs_float_noise(self):
        spec = [("A", 0.1, []), ("B", 0.2, ["A"]), ("C", 0.3, ["B"])]
        _, _, _, _, strict = run_analysis(spec)
        _, _, _, _, tolerant = run_analysis(spec, tolerance=1e-9)
        self.assertEqual(tolerant.critical_ids, ["A", "B", "C"])
        self.assertLessEqual(len(strict.critical_ids), 3)
        self.assertIn("C", strict.critical_ids)

    def test_empty(self):
        analysis = analyze_reserves([], resolve_dependencies([]), {}, {}, project_start=2)
        self.assertEqual(analysis.project_finish, 2)
        self.assertEqual(analysis.project_duration, 0)
        self.assertEqual(analysis.critical_ids, [])


class TestHelpers(unittest.TestCase):
    def test_network_levels_use_longest_predecessor_chain(self):
        tasks, graph, order, _, _ = run_analysis(
            [("A", 1, []), ("B", 1, ["A"]), ("C", 1, ["B"]), ("D", 1, ["A", "C"]), ("E", 1, [])]
        )
        self.assertEqual(network_levels(order, graph), {"A": 0, "B": 1, "C": 2, "D": 3, "E": 0})

    def test_critical_chains_without_critical_tasks(self):
        tasks, graph, _, forward, _ = run_analysis([("A", 1, [])])
        self.assertEqual(critical_chains(tasks, graph, forward, []), [])


class TestCriticalChainLimit(unittest.TestCase):
    def setUp(self):
        spec = [("J0", 1, [])]
        for i in range(1, 21):
            spec += [(f"L{i}", 1, [f"J{i - 1}"]), (f"R{i}", 1, [f"J{i - 1}"]), (f"J{i}", 1, [f"L{i}", f"R{i}"])]
        self.tasks, self.graph, self.order, self.forward, _ = run_analysis(spec)
        self.backward = backward_pass(self.tasks, self.graph, self.order, self.forward)
        self.critical_ids = [task.id for task in self.tasks]

    def test_chains_are_produced_lazily(self):
        chains = iter_critical_chains(self.tasks, self.graph, self.forward, self.critical_ids)
        first = next(chains)
        self.assertEqual(first[:3], ["J0", "L1", "J1"])
        self.assertEqual(first[-2:], ["L20", "J20"])
        self.assertEqual(next(chains)[-2:], ["R20", "J20"])

    def test_limit(self):
        chains = critical_chains(self.tasks, self.graph, self.forward, self.critical_ids, limit=3)
        self.assertEqual(len(chains), 3)
        self.assertEqual(chains[2][-4:], ["R19", "J19", "L20", "J20"])

    def test_analysis_marks_truncation(self):
        analysis = analyze_reserves(self.tasks, self.graph, self.forward, self.backward, max_chains=10)
        self.assertEqual(analysis.critical_ids, self.critical_ids)
        self.assertEqual(len(analysis.critical_chains), 10)
        self.assertTrue(analysis.chains_truncated)

    def test_small_network_is_not_truncated(self):
        tasks, graph, order, forward, _ = run_analysis(
            [("A", 1, []), ("B", 3, ["A"]), ("C", 3, ["A"]), ("D", 1, ["B", "C"])]
        )
        backward = backward_pass(tasks, graph, order, forward)
        analysis = analyze_reserves(tasks, graph, forward, backward, max_chains=2)
        self.assertEqual(len(analysis.critical_chains), 2)
        self.assertFalse(analysis.chains_truncated)

        analysis = analyze_reserves(tasks, graph, forward, backward, max_chains=1)
        self.assertEqual(analysis.critical_chains, [["A", "B", "D"]])
        self.assertTrue(analysis.chains_truncated)


if __name__ == "__main__":
    unittest.main()
