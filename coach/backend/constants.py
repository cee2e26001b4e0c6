APP_NAME = "SkillStrong Career Coach API"
APP_VERSION = "1.0.0"
DEFAULT_CORS_ALLOW_ORIGINS = [
	"http://localhost",
	"http://127.0.0.1",
	"http://localhost:3000",
]
DEFAULT_TRUSTED_HOSTS = [
	"127.0.0.1",
	"localhost",
	"testserver",
]

DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
DEFAULT_OPENAI_TEMPERATURE = 0.3
DEFAULT_OPENAI_TIMEOUT_S = 30.0
DEFAULT_CONTEXT_TURNS = 12
MAX_FOLLOWUPS = 3

DEFAULT_FOLLOWUPS = (
	"Find local apprenticeships",
	"Explore training programs",
	"Compare typical salaries (BLS)",
)

OFF_DOMAIN_ANSWER = (
	"I focus on modern manufacturing careers. We can explore roles like CNC Machinist, "
	"Robotics Technician, Welding Programmer, Additive Manufacturing, Maintenance Tech, "
	"or Quality Control."
)
LOCATION_REQUIRED_ANSWER = (
	"To find local results, please set your location using the button in the header."
)
ERROR_ANSWER = "Sorry, I couldn't process that."

NEXT_STEPS_BLOCK = """**Next Steps**
You can also search for more opportunities on your own:
* [Search SkillStrong Programs](/programs/all)
* [Search SkillStrong Jobs](/jobs/all)
* [Search US Department of Education for programs](https://collegescorecard.ed.gov/)
* [Search for jobs on Indeed.com](https://www.indeed.com/)"""
