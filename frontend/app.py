import os
import requests
import streamlit as st

from chat_turns import send_turn

API_BASE_URL = os.getenv("API_BASE_URL")
if not API_BASE_URL:
    try:
        API_BASE_URL = st.secrets["API_BASE_URL"]
    except Exception:
        API_BASE_URL = None

if not API_BASE_URL:
    st.error("API_BASE_URL is not set. Configure it in environment variables or Streamlit secrets.")
    st.stop()

st.set_page_config(page_title="Commerce Concierge", layout="wide")

st.title("Commerce Concierge")
st.caption("Describe what you want, add a price range, or upload a photo to find similar items.")

if "chat" not in st.session_state:
    st.session_state.chat = []
if "upload_key" not in st.session_state:
    st.session_state.upload_key = 0


def api_chat(message, upload=None):
    files = None
    if upload is not None:
        files = {"image": (upload.name, upload.getvalue(), upload.type or "image/jpeg")}
    response = requests.post(
        f"{API_BASE_URL}/api/chat",
        data={"message": message},
        files=files,
        timeout=60,
    )
    try:
        body = response.json()
    except ValueError:
        body = {"reply": response.text}
    if response.status_code >= 400:
        raise requests.HTTPError(body.get("reply") if isinstance(body, dict) else response.text)
    return body


def render_products(products):
    if not products:
        st.info("No matching products found. Try a broader description or a different price range.")
        return
    columns = st.columns(min(len(products), 5))
    for index, product in enumerate(products):
        with columns[index % len(columns)]:
            with st.container(border=True):
                if product.get("img"):
                    st.image(product["img"], use_container_width=True)
                st.markdown(f"**{product['title']}**")
                st.markdown(f"Price: ${product['price']:.2f}")
                if product.get("stars") is not None:
                    st.caption(f"⭐ {product['stars']} · match {product['similarity']:.2f}")
                if product.get("product"):
                    st.link_button("View product", product["product"])


with st.sidebar:
    st.subheader("Image search")
    upload = st.file_uploader(
        "Attach a photo",
        type=["jpg", "jpeg", "png", "webp"],
        key=f"upload_{st.session_state.upload_key}",
    )
    image_only = False
    if upload is not None:
        st.image(upload, use_container_width=True)
        image_only = st.button("Find similar items")
    if st.button("Clear chat"):
        st.session_state.chat = []
        st.rerun()

for item in st.session_state.chat:
    with st.chat_message(item["role"]):
        if item.get("products") is not None:
            render_products(item["products"])
        else:
            st.markdown(item["content"])

message = st.chat_input("e.g. running shoes under $80, or 'find something like this'")
if message or image_only:
    send_turn(st.session_state, message, upload, api_chat)
    st.rerun()
