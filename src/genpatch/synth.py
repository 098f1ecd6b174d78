"""Block synthesizer – literal text for every injectable capability.

Templates are written at member level with a two-space step and re-indented
to the host file (its member indent and indentation unit) on render.
Placeholders are ``__NAME__`` tokens; Kotlin and Groovy both use ``{}`` and
``$`` so neither ``str.format`` nor ``string.Template`` fits.

Generated Kotlin uses fully qualified platform names so no ``import`` lines
need to be added to the target file.  Each block declares its own private
types and fields under a capability-scoped prefix and never calls into
another capability.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass
from typing import Callable, Optional

from . import markers
from .bridge import BridgeLimits
from .markers import CapabilityMarker, RequestCodeRange

KEEP_ANNOTATION = "@androidx.annotation.Keep"


def reindent(block: str, indent: str = "", unit: str = "  ", step: int = 2) -> str:
    """Re-indent *block* (written with *step*-space levels) to *indent* + *unit* levels."""
    out: list[str] = []
    for line in block.splitlines():
        if not line.strip():
            out.append("")
            continue
        stripped = line.lstrip(" ")
        level, extra = divmod(len(line) - len(stripped), step)
        out.append(f"{indent}{unit * level}{' ' * extra}{stripped}")
    return "\n".join(out)


def render(template: str, indent: str = "", unit: str = "  ", **values: object) -> str:
    body = textwrap.dedent(template).strip("\n")
    for key, value in values.items():
        body = body.replace(f"__{key.upper()}__", str(value))
    return reindent(body, indent, unit)


# ---------------------------------------------------------------------------
# Shared monitor wait loop (rendered into each callback-keyed bridge)
# ---------------------------------------------------------------------------

_MONITOR_CLASS = """
private class __CLASS__ {
  val lock = java.util.concurrent.locks.ReentrantLock()
  val changed: java.util.concurrent.locks.Condition = lock.newCondition()
  // 0 idle, 1 waiting, 2 done
  var phase = 0
  var requestCode = -1
__FIELDS__
  var error: String? = null
}
"""

_MONITOR_BEGIN = """
monitor.lock.lock()
try {
  if (monitor.phase == 1) {
    throw IllegalStateException("busy")
  }
  monitor.phase = 1
  monitor.requestCode = code
__RESET__
  monitor.error = null
} finally {
  monitor.lock.unlock()
}
"""

_MONITOR_WAIT = """
val waitMs = if (timeoutMs > 0L) timeoutMs else __TIMEOUT__L
var remaining = java.util.concurrent.TimeUnit.MILLISECONDS.toNanos(waitMs)
monitor.lock.lock()
try {
  while (monitor.phase != 2 || monitor.requestCode != code) {
    if (remaining <= 0L) {
      if (monitor.requestCode == code) {
        monitor.phase = 0
      }
      throw RuntimeException("timeout")
    }
    remaining = monitor.changed.awaitNanos(remaining)
  }
  monitor.phase = 0
  val failure = monitor.error
  if (failure != null) {
    throw RuntimeException(failure)
  }
  return __RESULT__
} finally {
  monitor.lock.unlock()
}
"""

_MONITOR_FINISH = """
private fun __NAME__(code: Int, __PARAMS__, error: String?) {
  val monitor = __FIELD__
  monitor.lock.lock()
  try {
    if (monitor.phase != 1 || monitor.requestCode != code) {
      return
    }
__ASSIGN__
    monitor.error = error
    monitor.phase = 2
    monitor.changed.signalAll()
  } finally {
    monitor.lock.unlock()
  }
}
"""


def _lines(*items: str, level: int = 1) -> str:
    pad = "  " * level
    return "\n".join(pad + item for item in items)


def _nested(template: str, level: int, **values: object) -> str:
    """Render a shared fragment for splicing at *level* inside another template."""
    return render(template, "  " * level, "  ", **values)


# ---------------------------------------------------------------------------
# Folder picker bridge
# ---------------------------------------------------------------------------

def folder_picker_block(
    indent: str = "  ",
    unit: str = "  ",
    limits: Optional[BridgeLimits] = None,
    codes: Optional[RequestCodeRange] = None,
) -> str:
    limits = limits or BridgeLimits()
    codes = codes or markers.REQUEST_CODES[markers.FOLDER_PICKER.capability]
    template = """
    // __MARKER__
    __MONITOR_CLASS__

    private val genpatchFolderPicker = GenpatchFolderPickerMonitor()
    private val genpatchFolderPickerSeq = java.util.concurrent.atomic.AtomicInteger(0)

    __KEEP__
    @Suppress("DEPRECATION")
    fun genpatchPickFolder(timeoutMs: Long): String {
      val monitor = genpatchFolderPicker
      val code = __BASE__ + Math.floorMod(genpatchFolderPickerSeq.getAndIncrement(), __SPAN__)
    __BEGIN__
      runOnUiThread {
        try {
          val intent = android.content.Intent(android.content.Intent.ACTION_OPEN_DOCUMENT_TREE)
          intent.addFlags(
            android.content.Intent.FLAG_GRANT_READ_URI_PERMISSION or
              android.content.Intent.FLAG_GRANT_WRITE_URI_PERMISSION or
              android.content.Intent.FLAG_GRANT_PERSISTABLE_URI_PERMISSION
          )
          startActivityForResult(intent, code)
        } catch (e: Throwable) {
          genpatchFolderPickerFinish(code, null, e.message ?: e.javaClass.name)
        }
      }
    __WAIT__
    }

    __FINISH__

    private fun genpatchFolderPickerOnResult(requestCode: Int, resultCode: Int, data: android.content.Intent?) {
      if (requestCode < __BASE__ || requestCode >= __END__) {
        return
      }
      val tree = if (resultCode == android.app.Activity.RESULT_OK) data?.data else null
      if (tree == null) {
        genpatchFolderPickerFinish(requestCode, null, null)
        return
      }
      try {
        contentResolver.takePersistableUriPermission(
          tree,
          android.content.Intent.FLAG_GRANT_READ_URI_PERMISSION or android.content.Intent.FLAG_GRANT_WRITE_URI_PERMISSION
        )
      } catch (ignored: Throwable) {
      }
      genpatchFolderPickerFinish(requestCode, tree.toString(), null)
    }
    """
    body = textwrap.dedent(template).strip("\n")
    body = (
        body.replace("__MONITOR_CLASS__", _nested(
            _MONITOR_CLASS, 0,
            CLASS="GenpatchFolderPickerMonitor",
            FIELDS=_lines("var uri: String? = null"),
        ))
        .replace("__BEGIN__", _nested(_MONITOR_BEGIN, 1, RESET=_lines("monitor.uri = null")))
        .replace("__WAIT__", _nested(
            _MONITOR_WAIT, 1, TIMEOUT=limits.default_timeout_ms, RESULT='monitor.uri ?: ""',
        ))
        .replace("__FINISH__", _nested(
            _MONITOR_FINISH, 0,
            NAME="genpatchFolderPickerFinish",
            PARAMS="uri: String?",
            FIELD="genpatchFolderPicker",
            ASSIGN=_lines("monitor.uri = uri", level=2),
        ))
    )
    return render(
        body, indent, unit,
        MARKER=markers.FOLDER_PICKER.text,
        KEEP=KEEP_ANNOTATION,
        BASE=codes.base,
        SPAN=codes.span,
        END=codes.end,
    )


def folder_picker_hook(indent: str, params: list[str]) -> str:
    request_code, result_code, data = params[:3]
    return (
        f"{indent}// {markers.FOLDER_PICKER_HOOK.text}\n"
        f"{indent}genpatchFolderPickerOnResult({request_code}, {result_code}, {data})\n"
    )


def folder_picker_override(indent: str = "  ", unit: str = "  ") -> str:
    template = """
    // __MARKER__
    @Suppress("DEPRECATION", "OVERRIDE_DEPRECATION")
    override fun onActivityResult(requestCode: Int, resultCode: Int, data: android.content.Intent?) {
      genpatchFolderPickerOnResult(requestCode, resultCode, data)
      super.onActivityResult(requestCode, resultCode, data)
    }
    """
    return render(template, indent, unit, MARKER=markers.FOLDER_PICKER_HOOK.text)


# ---------------------------------------------------------------------------
# Microphone permission bridge
# ---------------------------------------------------------------------------

def mic_permission_block(
    indent: str = "  ",
    unit: str = "  ",
    limits: Optional[BridgeLimits] = None,
    codes: Optional[RequestCodeRange] = None,
) -> str:
    limits = limits or BridgeLimits()
    codes = codes or markers.REQUEST_CODES[markers.MIC_PERMISSION.capability]
    template = """
    // __MARKER__
    __MONITOR_CLASS__

    private val genpatchMicPermission = GenpatchMicPermissionMonitor()
    private val genpatchMicPermissionSeq = java.util.concurrent.atomic.AtomicInteger(0)

    __KEEP__
    fun genpatchRequestMicPermission(timeoutMs: Long): Boolean {
      if (checkSelfPermission(android.Manifest.permission.RECORD_AUDIO) == android.content.pm.PackageManager.PERMISSION_GRANTED) {
        return true
      }
      val monitor = genpatchMicPermission
      val code = __BASE__ + Math.floorMod(genpatchMicPermissionSeq.getAndIncrement(), __SPAN__)
    __BEGIN__
      runOnUiThread {
        try {
          requestPermissions(arrayOf(android.Manifest.permission.RECORD_AUDIO), code)
        } catch (e: Throwable) {
          genpatchMicPermissionFinish(code, false, e.message ?: e.javaClass.name)
        }
      }
    __WAIT__
    }

    __FINISH__

    private fun genpatchMicPermissionOnResult(requestCode: Int, permissions: Array<out String>, grantResults: IntArray) {
      if (requestCode < __BASE__ || requestCode >= __END__) {
        return
      }
      var granted = grantResults.isNotEmpty() && permissions.isNotEmpty()
      for (result in grantResults) {
        if (result != android.content.pm.PackageManager.PERMISSION_GRANTED) {
          granted = false
        }
      }
      genpatchMicPermissionFinish(requestCode, granted, null)
    }
    """
    body = textwrap.dedent(template).strip("\n")
    body = (
        body.replace("__MONITOR_CLASS__", _nested(
            _MONITOR_CLASS, 0,
            CLASS="GenpatchMicPermissionMonitor",
            FIELDS=_lines("var granted = false"),
        ))
        .replace("__BEGIN__", _nested(_MONITOR_BEGIN, 1, RESET=_lines("monitor.granted = false")))
        .replace("__WAIT__", _nested(
            _MONITOR_WAIT, 1, TIMEOUT=limits.default_timeout_ms, RESULT="monitor.granted",
        ))
        .replace("__FINISH__", _nested(
            _MONITOR_FINISH, 0,
            NAME="genpatchMicPermissionFinish",
            PARAMS="granted: Boolean",
            FIELD="genpatchMicPermission",
            ASSIGN=_lines("monitor.granted = granted", level=2),
        ))
    )
    return render(
        body, indent, unit,
        MARKER=markers.MIC_PERMISSION.text,
        KEEP=KEEP_ANNOTATION,
        BASE=codes.base,
        SPAN=codes.span,
        END=codes.end,
    )


def mic_permission_hook(indent: str, params: list[str]) -> str:
    request_code, permissions, grant_results = params[:3]
    return (
        f"{indent}// {markers.MIC_PERMISSION_HOOK.text}\n"
        f"{indent}genpatchMicPermissionOnResult({request_code}, {permissions}, {grant_results})\n"
    )


def mic_permission_override(indent: str = "  ", unit: str = "  ") -> str:
    template = """
    // __MARKER__
    @Suppress("DEPRECATION", "OVERRIDE_DEPRECATION")
    override fun onRequestPermissionsResult(requestCode: Int, permissions: Array<String>, grantResults: IntArray) {
      genpatchMicPermissionOnResult(requestCode, permissions, grantResults)
      super.onRequestPermissionsResult(requestCode, permissions, grantResults)
    }
    """
    return render(template, indent, unit, MARKER=markers.MIC_PERMISSION_HOOK.text)


# ---------------------------------------------------------------------------
# Speech recognition bridge
# ---------------------------------------------------------------------------

_SPEECH_TEMPLATE = """
// __MARKER__
private class GenpatchSpeechContext {
  val startLock = java.util.concurrent.locks.ReentrantLock()
  val startChanged: java.util.concurrent.locks.Condition = startLock.newCondition()
  // 0 idle, 1 waiting, 2 done
  var startPhase = 0
  var startSession = 0
  var startError: String? = null
  var activeSession = 0
  var sessionSeq = 0
  val queueLock = Any()
  val queue = java.util.ArrayDeque<org.json.JSONObject>()
  var lastAmplitudeAt = 0L
  // UI thread only
  var recognizer: android.speech.SpeechRecognizer? = null
  var recognizerSession = 0
}

private val genpatchSpeech = GenpatchSpeechContext()

__KEEP__
fun genpatchSpeechStart(language: String, timeoutMs: Long): Int {
  val ctx = genpatchSpeech
  if (checkSelfPermission(android.Manifest.permission.RECORD_AUDIO) != android.content.pm.PackageManager.PERMISSION_GRANTED) {
    throw IllegalStateException("permission-denied")
  }
  if (!android.speech.SpeechRecognizer.isRecognitionAvailable(this)) {
    throw IllegalStateException("unavailable")
  }
  var session = 0
  ctx.startLock.lock()
  try {
    if (ctx.activeSession != 0) {
      throw IllegalStateException("busy")
    }
    ctx.sessionSeq += 1
    session = ctx.sessionSeq
    ctx.activeSession = session
    ctx.startSession = session
    ctx.startPhase = 1
    ctx.startError = null
  } finally {
    ctx.startLock.unlock()
  }
  synchronized(ctx.queueLock) {
    ctx.queue.clear()
    ctx.lastAmplitudeAt = 0L
  }
  runOnUiThread {
    genpatchSpeechLaunch(session, language)
  }
  val waitMs = if (timeoutMs > 0L) timeoutMs else __START_TIMEOUT__L
  var remaining = java.util.concurrent.TimeUnit.MILLISECONDS.toNanos(waitMs)
  var failure: String? = null
  ctx.startLock.lock()
  try {
    while (ctx.startPhase != 2 || ctx.startSession != session) {
      if (remaining <= 0L) {
        failure = "timeout"
        break
      }
      remaining = ctx.startChanged.awaitNanos(remaining)
    }
    if (failure == null) {
      failure = ctx.startError
    }
    if (ctx.startSession == session) {
      ctx.startPhase = 0
    }
  } finally {
    ctx.startLock.unlock()
  }
  if (failure != null) {
    genpatchSpeechFinish(session)
    throw RuntimeException(failure)
  }
  return session
}

__KEEP__
fun genpatchSpeechStop(session: Int): Boolean {
  if (!genpatchSpeechIsActive(session)) {
    return false
  }
  val ctx = genpatchSpeech
  runOnUiThread {
    if (ctx.recognizerSession == session) {
      ctx.recognizer?.stopListening()
    }
  }
  return true
}

__KEEP__
fun genpatchSpeechCancel(session: Int): Boolean {
  if (!genpatchSpeechFinish(session)) {
    return false
  }
  genpatchSpeechStarted(session, "cancelled")
  genpatchSpeechPush(session, "state", "state", "cancelled")
  return true
}

__KEEP__
fun genpatchSpeechDrain(max: Int): String {
  val ctx = genpatchSpeech
  val limit = if (max <= 0 || max > __DRAIN_MAX__) __DRAIN_MAX__ else max
  val out = org.json.JSONArray()
  synchronized(ctx.queueLock) {
    while (out.length() < limit) {
      val event = ctx.queue.pollFirst() ?: break
      out.put(event)
    }
  }
  return out.toString()
}

private fun genpatchSpeechIsActive(session: Int): Boolean {
  val ctx = genpatchSpeech
  ctx.startLock.lock()
  try {
    return session != 0 && ctx.activeSession == session
  } finally {
    ctx.startLock.unlock()
  }
}

private fun genpatchSpeechStarted(session: Int, error: String?) {
  val ctx = genpatchSpeech
  ctx.startLock.lock()
  try {
    if (ctx.startPhase != 1 || ctx.startSession != session) {
      return
    }
    ctx.startError = error
    ctx.startPhase = 2
    ctx.startChanged.signalAll()
  } finally {
    ctx.startLock.unlock()
  }
}

private fun genpatchSpeechFinish(session: Int): Boolean {
  val ctx = genpatchSpeech
  ctx.startLock.lock()
  try {
    if (session == 0 || ctx.activeSession != session) {
      return false
    }
    ctx.activeSession = 0
  } finally {
    ctx.startLock.unlock()
  }
  runOnUiThread {
    if (ctx.recognizerSession == session) {
      ctx.recognizer?.destroy()
      ctx.recognizer = null
      ctx.recognizerSession = 0
    }
  }
  return true
}

private fun genpatchSpeechPush(session: Int, type: String, key: String, value: Any?) {
  val event = org.json.JSONObject()
  event.put("type", type)
  event.put("session", session)
  event.put(key, value)
  val ctx = genpatchSpeech
  synchronized(ctx.queueLock) {
    while (ctx.queue.size >= __CAPACITY__) {
      ctx.queue.pollFirst()
    }
    ctx.queue.addLast(event)
  }
}

private fun genpatchSpeechAmplitude(session: Int, rmsdB: Float) {
  val ctx = genpatchSpeech
  val now = android.os.SystemClock.elapsedRealtime()
  synchronized(ctx.queueLock) {
    if (ctx.lastAmplitudeAt != 0L && now - ctx.lastAmplitudeAt < __AMPLITUDE_MS__L) {
      return
    }
    ctx.lastAmplitudeAt = now
  }
  genpatchSpeechPush(session, "amplitude", "value", rmsdB.toDouble())
}

private fun genpatchSpeechBestText(bundle: android.os.Bundle?): String {
  val matches = bundle?.getStringArrayList(android.speech.SpeechRecognizer.RESULTS_RECOGNITION)
  return if (matches.isNullOrEmpty()) "" else matches[0]
}

private fun genpatchSpeechLaunch(session: Int, language: String) {
  val ctx = genpatchSpeech
  if (!genpatchSpeechIsActive(session)) {
    return
  }
  try {
    ctx.recognizer?.destroy()
    val recognizer = android.speech.SpeechRecognizer.createSpeechRecognizer(this)
    ctx.recognizer = recognizer
    ctx.recognizerSession = session
    recognizer.setRecognitionListener(object : android.speech.RecognitionListener {
      override fun onReadyForSpeech(params: android.os.Bundle?) {
        genpatchSpeechPush(session, "state", "state", "listening")
        genpatchSpeechStarted(session, null)
      }

      override fun onBeginningOfSpeech() {
        genpatchSpeechPush(session, "state", "state", "speaking")
      }

      override fun onRmsChanged(rmsdB: Float) {
        genpatchSpeechAmplitude(session, rmsdB)
      }

      override fun onBufferReceived(buffer: ByteArray?) {
      }

      override fun onEndOfSpeech() {
        genpatchSpeechPush(session, "state", "state", "processing")
      }

      override fun onError(error: Int) {
        genpatchSpeechPush(session, "error", "code", error)
        genpatchSpeechStarted(session, "recognizer-error:" + error)
        genpatchSpeechFinish(session)
      }

      override fun onResults(results: android.os.Bundle?) {
        genpatchSpeechPush(session, "final", "text", genpatchSpeechBestText(results))
        genpatchSpeechPush(session, "state", "state", "idle")
        genpatchSpeechFinish(session)
      }

      override fun onPartialResults(partialResults: android.os.Bundle?) {
        genpatchSpeechPush(session, "partial", "text", genpatchSpeechBestText(partialResults))
      }

      override fun onEvent(eventType: Int, params: android.os.Bundle?) {
      }
    })
    val intent = android.content.Intent(android.speech.RecognizerIntent.ACTION_RECOGNIZE_SPEECH)
    intent.putExtra(
      android.speech.RecognizerIntent.EXTRA_LANGUAGE_MODEL,
      android.speech.RecognizerIntent.LANGUAGE_MODEL_FREE_FORM
    )
    intent.putExtra(android.speech.RecognizerIntent.EXTRA_PARTIAL_RESULTS, true)
    if (language.isNotEmpty()) {
      intent.putExtra(android.speech.RecognizerIntent.EXTRA_LANGUAGE, language)
    }
    recognizer.startListening(intent)
  } catch (e: Throwable) {
    val message = e.message ?: e.javaClass.name
    genpatchSpeechPush(session, "error", "message", message)
    genpatchSpeechStarted(session, message)
    genpatchSpeechFinish(session)
  }
}

private fun genpatchSpeechRelease() {
  val ctx = genpatchSpeech
  var session = 0
  ctx.startLock.lock()
  try {
    session = ctx.activeSession
    ctx.activeSession = 0
    if (ctx.startPhase == 1) {
      ctx.startError = "destroyed"
      ctx.startPhase = 2
      ctx.startChanged.signalAll()
    }
  } finally {
    ctx.startLock.unlock()
  }
  ctx.recognizer?.destroy()
  ctx.recognizer = null
  ctx.recognizerSession = 0
  if (session != 0) {
    genpatchSpeechPush(session, "state", "state", "destroyed")
  }
}
"""


def speech_block(
    indent: str = "  ",
    unit: str = "  ",
    limits: Optional[BridgeLimits] = None,
) -> str:
    limits = limits or BridgeLimits()
    return render(
        _SPEECH_TEMPLATE, indent, unit,
        MARKER=markers.SPEECH.text,
        KEEP=KEEP_ANNOTATION,
        START_TIMEOUT=limits.speech_start_timeout_ms,
        DRAIN_MAX=limits.speech_drain_max,
        CAPACITY=limits.speech_queue_capacity,
        AMPLITUDE_MS=limits.amplitude_interval_ms,
    )


def speech_hook(indent: str, params: list[str]) -> str:
    return (
        f"{indent}// {markers.SPEECH_HOOK.text}\n"
        f"{indent}genpatchSpeechRelease()\n"
    )


def speech_override(indent: str = "  ", unit: str = "  ") -> str:
    template = """
    // __MARKER__
    override fun onDestroy() {
      genpatchSpeechRelease()
      super.onDestroy()
    }
    """
    return render(template, indent, unit, MARKER=markers.SPEECH_HOOK.text)


# ---------------------------------------------------------------------------
# Bridge descriptors consumed by the activity patcher
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BridgeSpec:
    """Everything the activity patcher needs to know about one bridge."""

    key: str
    core: CapabilityMarker
    hook: CapabilityMarker
    keep: CapabilityMarker
    callback: str
    hook_params: int
    entry_points: tuple[str, ...]
    keep_signatures: tuple[str, ...]
    core_block: Callable[..., str]
    hook_snippet: Callable[[str, list[str]], str]
    override_block: Callable[[str, str], str]


BRIDGES: tuple[BridgeSpec, ...] = (
    BridgeSpec(
        key="folder_picker",
        core=markers.FOLDER_PICKER,
        hook=markers.FOLDER_PICKER_HOOK,
        keep=markers.KEEP_FOLDER_PICKER,
        callback="onActivityResult",
        hook_params=3,
        entry_points=("genpatchPickFolder",),
        keep_signatures=("public java.lang.String genpatchPickFolder(long);",),
        core_block=folder_picker_block,
        hook_snippet=folder_picker_hook,
        override_block=folder_picker_override,
    ),
    BridgeSpec(
        key="mic_permission",
        core=markers.MIC_PERMISSION,
        hook=markers.MIC_PERMISSION_HOOK,
        keep=markers.KEEP_MIC_PERMISSION,
        callback="onRequestPermissionsResult",
        hook_params=3,
        entry_points=("genpatchRequestMicPermission",),
        keep_signatures=("public boolean genpatchRequestMicPermission(long);",),
        core_block=mic_permission_block,
        hook_snippet=mic_permission_hook,
        override_block=mic_permission_override,
    ),
    BridgeSpec(
        key="speech",
        core=markers.SPEECH,
        hook=markers.SPEECH_HOOK,
        keep=markers.KEEP_SPEECH,
        callback="onDestroy",
        hook_params=0,
        entry_points=("genpatchSpeechStart", "genpatchSpeechStop", "genpatchSpeechCancel", "genpatchSpeechDrain"),
        keep_signatures=(
            "public int genpatchSpeechStart(java.lang.String, long);",
            "public boolean genpatchSpeechStop(int);",
            "public boolean genpatchSpeechCancel(int);",
            "public java.lang.String genpatchSpeechDrain(int);",
        ),
        core_block=lambda indent, unit, limits=None: speech_block(indent, unit, limits),
        hook_snippet=speech_hook,
        override_block=speech_override,
    ),
)


def get_bridge(key: str) -> BridgeSpec:
    for spec in BRIDGES:
        if spec.key == key:
            return spec
    raise KeyError(f"Unknown bridge: {key}")


# ---------------------------------------------------------------------------
# Keep rules (proguard-rules.pro)
# ---------------------------------------------------------------------------

def keep_rules_block(spec: BridgeSpec) -> str:
    members = "\n".join(f"    {sig}" for sig in spec.keep_signatures)
    return (
        f"# {spec.keep.text}\n"
        "-keepclassmembers class * extends android.app.Activity {\n"
        f"{members}\n"
        "}\n"
    )


# ---------------------------------------------------------------------------
# AndroidManifest.xml
# ---------------------------------------------------------------------------

def permission_lines(permissions: list[str], indent: str = "    ") -> str:
    return "".join(f'{indent}<uses-permission android:name="{p}" />\n' for p in permissions)


def permissions_block(permissions: list[str], indent: str = "    ") -> str:
    return f"{indent}{markers.PERMISSIONS.comment('xml')}\n" + permission_lines(permissions, indent)


def speech_queries_block(indent: str = "    ", unit: str = "    ") -> str:
    return (
        f"{indent}{markers.SPEECH_QUERIES.comment('xml')}\n"
        f"{indent}<queries>\n"
        f"{indent}{unit}<intent>\n"
        f'{indent}{unit * 2}<action android:name="android.speech.RecognitionService" />\n'
        f"{indent}{unit}</intent>\n"
        f"{indent}</queries>\n"
    )


# ---------------------------------------------------------------------------
# Gradle
# ---------------------------------------------------------------------------

def signing_apply_line(script_name: str, kind: str) -> str:
    if kind == "kts":
        return f'apply(from = "${{rootDir}}/{script_name}")'
    return f'apply from: "${{rootDir}}/{script_name}"'


def signing_apply_block(script_name: str, kind: str) -> str:
    return f"// {markers.SIGNING_APPLY.text}\n{signing_apply_line(script_name, kind)}\n"


_SIGNING_SCRIPT = """
// __MARKER__
//
// Generated by genpatch; regenerated whenever the marker revision changes.
// Release signing only. Debug builds never need it.
//
// Environment:
// - __PATH_VAR__: keystore path
// - __STORE_PASSWORD_VAR__: keystore password
// - __ALIAS_VAR__: key alias
// - __KEY_PASSWORD_VAR__: key password
//
// Any variable missing, or a keystore path that does not exist:
// no signing configuration is declared and unsigned builds keep working.

def genpatchKeystorePath = System.getenv('__PATH_VAR__')
def genpatchKeystorePassword = System.getenv('__STORE_PASSWORD_VAR__')
def genpatchKeyAlias = System.getenv('__ALIAS_VAR__')
def genpatchKeyPassword = System.getenv('__KEY_PASSWORD_VAR__')

def genpatchHasSigning = genpatchKeystorePath && genpatchKeystorePassword && genpatchKeyAlias && genpatchKeyPassword && file(genpatchKeystorePath).exists()

if (!genpatchHasSigning) {
  println('[genpatch-signing] release signing not configured (__PATH_VAR__/__STORE_PASSWORD_VAR__/__ALIAS_VAR__/__KEY_PASSWORD_VAR__ missing or keystore absent), skipping')
  return
}

android {
  signingConfigs {
    release {
      storeFile file(genpatchKeystorePath)
      storePassword genpatchKeystorePassword
      keyAlias genpatchKeyAlias
      keyPassword genpatchKeyPassword
    }
  }
  buildTypes {
    release {
      signingConfig signingConfigs.release
    }
  }
}
"""


def signing_script(
    keystore_path_env: str = "KEYSTORE_PATH",
    keystore_password_env: str = "KEYSTORE_PASSWORD",
    key_alias_env: str = "KEY_ALIAS",
    key_password_env: str = "KEY_PASSWORD",
) -> str:
    return render(
        _SIGNING_SCRIPT,
        MARKER=markers.SIGNING_SCRIPT.text,
        PATH_VAR=keystore_path_env,
        STORE_PASSWORD_VAR=keystore_password_env,
        ALIAS_VAR=key_alias_env,
        KEY_PASSWORD_VAR=key_password_env,
    ) + "\n"


_SETTINGS_FALLBACK = """
// __MARKER__
//
// Fallback written by genpatch because settings.gradle references this file
// and the generator did not produce it. Minimal settings only: repositories
// and the :app module. A generator-produced file always takes precedence.

pluginManagement {
  repositories {
    google()
    mavenCentral()
    gradlePluginPortal()
  }
}

dependencyResolutionManagement {
  repositoriesMode.set(RepositoriesMode.FAIL_ON_PROJECT_REPOS)
  repositories {
    google()
    mavenCentral()
  }
}

rootProject.name = "__PROJECT_NAME__"
include(":app")
"""


def settings_fallback(project_name: str = "android") -> str:
    return render(
        _SETTINGS_FALLBACK,
        MARKER=markers.SETTINGS_FALLBACK.text,
        PROJECT_NAME=project_name,
    ) + "\n"
