# clusterdoctor

clusterdoctor inspects Kubernetes resources and reports what looks wrong with them.
The resources are manifest-shaped dictionaries held in an in-memory `Cluster`;
analyzers read from it and return `Result` objects, which can be rendered as text or
JSON and, given an AI client, explained.

## What is checked

| Analyzer | Module | Reports |
| --- | --- | --- |
| `CronJobAnalyzer` | `clusterdoctor.cronjob` | suspended CronJobs, invalid five-field cron schedules, negative `startingDeadlineSeconds` |
| `DeploymentAnalyzer` | `clusterdoctor.deployment` | `spec.replicas` differing from `status.replicas` |
| `IngressAnalyzer` | `clusterdoctor.ingress` | no ingress class, missing IngressClass, missing backend Services, missing TLS Secrets |
| `MutatingWebhookAnalyzer` | `clusterdoctor.mutating_webhook` | webhook Services that are missing, select no pods, or select pods that are not `Running` |
| `HpaAnalyzer` | `clusterdoctor.hpa` | conditions not `True`, unsupported or missing scale targets, targets without container requests and limits |
| `NetworkPolicyAnalyzer` | `clusterdoctor.netpol` | policies with empty `matchLabels`, policies that select no pods |
| `LogAnalyzer` | `clusterdoctor.log` | containers whose recent log lines match an error pattern |
| `GatewayClassAnalyzer` | `clusterdoctor.gatewayclass` | GatewayClasses whose first condition is not `True` |
| `GatewayAnalyzer` | `clusterdoctor.gateway` | Gateways whose GatewayClass is missing or whose first condition is not `True` |
| `HTTPRouteAnalyzer` | `clusterdoctor.httproute` | missing parent Gateways, Gateways refusing the route's namespace or labels, missing backend Services, mismatched ports |

`clusterdoctor.cronjob.check_cron_schedule_is_valid(schedule)` returns `True` or
raises `CronSyntaxError`. It accepts five fields, names of months and weekdays,
`TZ=`/`CRON_TZ=` prefixes, descriptors such as `@daily`, and `@every <duration>`.

## The cluster model

```python
from clusterdoctor.cluster import Cluster
from clusterdoctor.common import AnalyzerConfig
from clusterdoctor.deployment import DeploymentAnalyzer

cluster = Cluster()
cluster.add({
    "kind": "Deployment",
    "metadata": {"name": "web", "namespace": "default"},
    "spec": {"replicas": 3},
    "status": {"replicas": 2},
})

config = AnalyzerConfig(client=cluster, namespace="default")
for result in DeploymentAnalyzer().analyze(config):
    print(result.kind, result.name, [failure.text for failure in result.error])
```

- `Cluster.add(*objects)` stores objects; each needs a `kind` and `metadata.name`, and
  adding the same kind, namespace and name twice raises `ValueError`.
- `Cluster.list(kind, namespace="", label_selector="")` returns copies sorted by
  namespace and name; an empty namespace means every namespace.
- `Cluster.get(kind, namespace, name)` returns a copy or raises `NotFoundError`.
- `Cluster.set_logs(...)` and `Cluster.pod_logs(namespace, pod, container, tail_lines)`
  hold and return container log text.

Label selectors (`clusterdoctor.cluster.parse_label_selector`, `labels_match`) support
`key=value`, `key==value`, `key!=value`, `key in (a,b)`, `key notin (a,b)`, `key` and
`!key`, separated by commas. `labels_include_any(selector, labels)` tells whether any
pair of a `matchLabels` mapping appears in a set of labels.

## Results and metrics

`clusterdoctor.common` defines `Failure` (text, optional Kubernetes documentation and
`Sensitive` pairs of real and masked values), `Result` (with `to_dict()`),
`AnalysisStats` and `AnalyzerConfig`. `mask_string(value)` returns a random
alphanumeric string of the same length. When `AnalyzerConfig.openapi_schema` is a
mapping of kind to field path to text, analyzers fill `Failure.kubernetes_doc` from it.

Each analyzer records the number of failures per object in the module-level
`ANALYZER_ERRORS` gauge (`ErrorsGauge`), clearing its own series before each run.

## Running several analyzers

```python
from clusterdoctor.analysis import Analysis

analysis = Analysis(client=cluster, namespace="default", filters=["Deployment", "Ingress"])
analysis.run_analysis()
print(analysis.print_output("text"))
```

`clusterdoctor.registry` names the analyzers. With neither `filters` nor
`active_filters` set, `run_analysis()` runs the core set from `core_analyzers()`:
`Deployment`, `Ingress`, `CronJob` and `MutatingWebhookConfiguration`. `filters` pick
from the merged map returned by `analyzer_map()`, and unknown names are added to
`Analysis.errors`. If `filters` is empty, known names in `active_filters` are run and
unknown ones are ignored. The additional analyzers are `HorizontalPodAutoScaler`,
`NetworkPolicy`, `Log`, `GatewayClass`, `Gateway` and `HTTPRoute`. `list_filters()`
returns both sets of names.

Analyzers run on up to `max_concurrency` threads. An analyzer that raises is recorded
as `"[<name>] <message>"` in `errors`, and the others still run. With `with_doc=True`,
the analysis passes its `openapi_schema` on to the analyzers. With `with_stats=True`,
the time of each analyzer is kept in `stats` and rendered by `print_stats()`.
`Analysis` is a context manager and closes its AI client on exit.

## Output

`print_output(format)` renders through `clusterdoctor.output.render`. The formats from
`output_formats()` are `json` and `text`. Any other name raises
`UnsupportedFormatError`. The JSON document holds `provider`, `errors`, `status` (`OK`
or `ProblemDetected`), `problems` (the total count of failures) and `results`. Text
output is coloured with termcolor only when standard output is a terminal and
`NO_COLOR` is unset.

## Explanations

Subclass `clusterdoctor.analysis.AIClient` with a `name` and a `get_completion(prompt)`
method, and set it as `Analysis.ai_client`. `get_ai_results(output, anonymize)` joins
each result's failure texts and fills in the prompt template for the result's kind.
Templates come from `Analysis.prompts`, fall back to the `default` key, and use the
`{language}` and `{text}` placeholders. It then stores the answer in
`Result.details`. With `anonymize=True`, sensitive values are masked in the prompt and
restored in the answer.

Answers are cached base64-encoded under `cache_key(provider, language, text)` in a
`ResultCache`. The default is `MemoryCache`, which can be switched off with
`disable()`. Provider failures raise `AIProviderError`, and a message containing
`status code: 429` is reported as an exhausted quota. A progress bar is shown unless
`output` is `"json"`.

## What it does not do

- It has no command-line tool.
- It does not connect to a live Kubernetes API server. Objects and logs must be loaded
  into a `Cluster` by the caller.
- It ships no AI provider: `AIClient` is abstract.
- Its only cache is the in-memory `MemoryCache`, which is not kept between runs.
- There are no analyzers for Pods, Services, ReplicaSets, StatefulSets, Nodes,
  PersistentVolumeClaims or validating webhooks.

## Running the tests

```
pip install -e .[test]
pytest
```